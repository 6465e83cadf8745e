"""
Dashboard data access layer.

Design rules:
- Views call ONLY `data.service` (DashboardService entry points).
- Every dashboard read resolves to a value: real payload, declared fallback,
  or synthetic demo data. Writes surface their failures.
- No env var reads here (config-only).
"""
