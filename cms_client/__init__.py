"""
Client-side helpers for the community site: API access and the
reserve-basement drawer with its cached, live-updating content.
"""
