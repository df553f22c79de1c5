"""J & J Secondary School portal API."""
