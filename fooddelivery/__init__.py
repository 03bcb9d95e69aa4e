"""Server-rendered food delivery app: customers, restaurant owners and drivers."""

__version__ = "1.0.0"
