"""
Request/response schemas for the Ascendia API.
"""
