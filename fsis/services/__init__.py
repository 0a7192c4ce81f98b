"""
Services package: resolution logic and the host capabilities it relies on.
"""
