"""
Workboard
Service layer: hierarchy orchestration, audit recording and notification fan-out.
"""
