"""External service clients: HubSpot, file downloads, CRM persistence and SMTP."""
