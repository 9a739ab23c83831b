"""
Shared helpers: lenient JSON accessors, expiring values, concurrent page
aggregation and formatting.
"""
