"""Demand forecasting and procurement recommendation platform."""
