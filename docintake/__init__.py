"""
Document intake service for HubSpot.

A webhook-driven pipeline that:
- Receives property-change notifications from HubSpot
- Resolves the referenced file and extracts permit data with Gemini
- Writes the extracted fields back to the CRM record
- Emails collected documents in size-bounded batches via a background queue
"""

__version__ = "1.0.0"
