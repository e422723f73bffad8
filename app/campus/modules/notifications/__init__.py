"""
Notifications module: single and broadcast creation, read toggle, bulk delete of read rows.
"""
