"""
Per-IP rate limits for the API.

Rates use the REST framework "<count>/<period>" format, with an optional
multiplier in the period: "100/15m" allows 100 requests every 15 minutes.
"""
import math
import re

from django.conf import settings
from rest_framework.exceptions import Throttled
from rest_framework.throttling import SimpleRateThrottle

RATE_PERIOD_RE = re.compile(r'^(\d*)\s*([smhd])[a-z]*$')

PERIOD_SECONDS = {'s': 1, 'm': 60, 'h': 3600, 'd': 86400}


class RateLimitExceeded(Throttled):
    """429 carrying the throttle's own message; the wait only goes into Retry-After"""

    def __init__(self, wait=None, detail=None, code=None):
        super().__init__(detail=detail, code=code)
        self.wait = math.ceil(wait) if wait is not None else None


class GeneralRateThrottle(SimpleRateThrottle):
    scope = 'general'
    message = 'Too many requests from this IP, please try again later'

    def get_cache_key(self, request, view):
        return self.cache_format % {
            'scope': self.scope,
            'ident': self.get_ident(request),
        }

    def parse_rate(self, rate):
        if rate is None:
            return (None, None)
        num, period = rate.split('/')
        match = RATE_PERIOD_RE.match(period.strip().lower())
        if not match:
            raise ValueError(f"Invalid throttle rate period: {rate!r}")
        multiplier = int(match.group(1) or 1)
        return (int(num), multiplier * PERIOD_SECONDS[match.group(2)])

    def allow_request(self, request, view):
        if not getattr(settings, 'API_THROTTLING_ENABLED', True):
            return True
        if super().allow_request(request, view):
            return True
        raise RateLimitExceeded(wait=self.wait(), detail=self.message)


class AuthRateThrottle(GeneralRateThrottle):
    """Stricter limit for register/login/logout"""
    scope = 'auth'
    message = 'Too many login attempts, please try again after 15 minutes'
