"""
Pose detection scans recorded against a practitioner's patients.
"""
