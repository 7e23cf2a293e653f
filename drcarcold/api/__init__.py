"""
DrCarCold REST API.

Function-based DRF views grouped by area (catalog, news, vehicles, site,
automation, auth), the JSON envelope and the exception handler.
"""
