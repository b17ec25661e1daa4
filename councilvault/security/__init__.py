"""
Security module - Wire-format sizes and the identity derivation message.
"""
