"""MiniSocial: hosted data service and client synchronisation core."""
