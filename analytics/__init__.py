"""Analytics package.

Distance computation, proximity clustering, configuration presets and the
output records derived from the clusters.
"""
