"""
HTTP routers for the Ascendia API.
"""
