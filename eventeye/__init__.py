"""
EventEye certificate issuance and verification service
"""
__version__ = "1.0.0"
