"""
Shared plumbing used by the feature apps: the background task facade and
its backends, media object storage, and list sorting/pagination helpers.
"""
