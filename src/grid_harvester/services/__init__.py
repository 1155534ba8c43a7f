"""
Shared service utilities.

- http.py  - ``requests.Session`` with retry/backoff and default timeout
- oauth.py - OAuth2 client-credentials tokens (``acquire_token``, ``TokenManager``)
"""
