"""
DrCarCold Django application.

Storefront catalogue, vehicle refrigerant lookup, news with an automated
crawler/AI rewrite pipeline, and the admin JSON API for the site.
"""
