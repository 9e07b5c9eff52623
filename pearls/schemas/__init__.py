"""
Pydantic schemas for tool arguments, results and HTTP bodies.
"""
