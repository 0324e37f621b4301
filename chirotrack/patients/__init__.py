"""
Patient records, each owned by the practitioner who created it.
"""
