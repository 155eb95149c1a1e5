"""
Request, response and stored-record schemas
"""
