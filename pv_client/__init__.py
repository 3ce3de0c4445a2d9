"""PV CSV replay client."""
