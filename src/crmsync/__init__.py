"""
crmsync: mirror Salesforce objects into Airtable tables.
"""

__version__ = "1.0.0"
