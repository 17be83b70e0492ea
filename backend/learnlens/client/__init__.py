# Client side of the dashboard: local intake checks, upload, dataset cache
# and the panels that refetch whenever the refresh token changes.
