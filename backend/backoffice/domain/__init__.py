# Overview: Framework-free domain package.
# Pure functions and value types for order states, marketplace payloads,
# category trees, period bucketing, report totals and CSV formatting.
# Nothing here imports Flask or touches the database session.
