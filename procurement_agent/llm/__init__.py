"""
Text provider clients, credential rotation and retry policy.
"""
