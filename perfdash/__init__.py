"""Service performance dashboard: subscription revenue KPIs from a sheet export."""

__version__ = "0.1.0"
