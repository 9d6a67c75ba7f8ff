"""Analytics app package.

Role scoped dashboards and the cached platform report for admins.
"""
