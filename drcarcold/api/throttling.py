"""
Custom throttle classes for public write endpoints.
"""

from rest_framework.throttling import AnonRateThrottle


class ContactFormThrottle(AnonRateThrottle):
    """
    Throttle for the public contact form.

    Rate: 5 submissions per hour per client IP.
    Applied to: /api/contact/
    """

    rate = "5/hour"
    scope = "contact"


class LoginThrottle(AnonRateThrottle):
    """
    Throttle for admin login attempts.

    Rate: 10 attempts per minute per client IP.
    Applied to: /api/auth/login/
    """

    rate = "10/minute"
    scope = "login"
