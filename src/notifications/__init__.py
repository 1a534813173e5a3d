"""Push notification dispatch and audience targeting for the restaurant admin."""
