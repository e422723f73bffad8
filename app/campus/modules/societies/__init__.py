"""
Society requests module.

A user petitions to found a society; an admin approves or rejects it once.
Approval promotes the president to the society role (no downgrade path).
"""
