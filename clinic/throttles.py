from rest_framework.throttling import AnonRateThrottle


class LoginRateThrottle(AnonRateThrottle):
    """Per-IP limit on sign-in attempts."""
    scope = 'login'


class RegisterRateThrottle(AnonRateThrottle):
    scope = 'register'
