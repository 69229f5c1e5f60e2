"""Bearer-token protected operator resources."""
