"""Complaint intake and triage client."""
