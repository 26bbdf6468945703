"""
Reporting queries over imported rides.

Usage:
    from analytics.queries import QUERY_REGISTRY

    query = QUERY_REGISTRY[2]
    result = await query.run(session, 200, 20)
"""

from analytics.queries import QUERY_REGISTRY, ReportQuery

__all__ = ["QUERY_REGISTRY", "ReportQuery"]
