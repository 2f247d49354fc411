"""
Pydantic models for visa records, MRZ data and verification results.
"""
