"""
suiterun: drives remote test runs and tracks their live status.
"""
