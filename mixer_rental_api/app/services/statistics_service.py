"""
Service layer for the admin dashboard.

Provides the overview counts shown on the dashboard cards, the two
performance ratios (query resolution and quotation success), the most
recent inquiries, day-by-day chart series and period performance
metrics.  All queries are read‑only.
"""

from __future__ import annotations

from typing import Any, Dict, List

from mixer_rental_api.app.core.db import get_connection


PERIOD_DAYS = {"7d": 7, "30d": 30, "90d": 90}
CHART_TYPES = ("queries", "quotations", "status", "machines")


def _rate(part: int, whole: int) -> int:
    return round(part / whole * 100) if whole else 0


class StatisticsService:
    """Service providing aggregated metrics for administrators."""

    @classmethod
    async def dashboard(cls, period: str = "30d") -> Dict[str, Any]:
        """Return dashboard metrics.

        ``period`` (``7d``, ``30d`` or ``90d``) controls the window used
        for "new customers"; unknown values fall back to 90 days.
        """
        days = PERIOD_DAYS.get(period, 90)
        conn = get_connection()
        try:
            cursor = conn.cursor()

            def scalar(sql: str, params: tuple = ()) -> int:
                return cursor.execute(sql, params).fetchone()[0] or 0

            total_queries = scalar("SELECT COUNT(*) FROM customer_queries")
            total_machines = scalar("SELECT COUNT(*) FROM machines")
            total_customers = scalar("SELECT COUNT(*) FROM customers")
            total_quotations = scalar("SELECT COUNT(*) FROM quotations")
            queries_today = scalar("SELECT COUNT(*) FROM customer_queries WHERE DATE(created_at) = DATE('now')")
            active_machines = scalar("SELECT COUNT(*) FROM machines WHERE is_active = 1")
            draft_quotations = scalar("SELECT COUNT(*) FROM quotations WHERE quotation_status = 'draft'")
            new_customers = scalar(
                "SELECT COUNT(*) FROM customers WHERE DATE(created_at) >= DATE('now', ?)", (f"-{days} day",)
            )
            completed_queries = scalar("SELECT COUNT(*) FROM customer_queries WHERE status = 'completed'")
            successful_quotations = scalar(
                "SELECT COUNT(*) FROM quotations WHERE delivery_status IN ('delivered', 'completed')"
            )
            accepted_quotations = scalar("SELECT COUNT(*) FROM quotations WHERE quotation_status = 'accepted'")
            recent = cursor.execute(
                """
                SELECT id, company_name, contact_number, site_location, status, created_at
                FROM customer_queries ORDER BY created_at DESC, id DESC LIMIT 6
                """
            ).fetchall()
        finally:
            conn.close()

        return {
            "overview": {
                "totalQueries": total_queries,
                "totalMachines": total_machines,
                "totalCustomers": total_customers,
                "totalQuotations": total_quotations,
            },
            "cards": {
                "queries": {"total": total_queries, "today": queries_today},
                "machines": {"total": total_machines, "active": active_machines},
                "quotations": {"total": total_quotations, "pending": draft_quotations},
                "customers": {"total": total_customers, "newPeriod": new_customers},
            },
            "performance": {
                "queryResolutionRate": _rate(completed_queries, total_queries),
                "quotationSuccessRate": _rate(successful_quotations, total_quotations),
                "acceptedQuotations": accepted_quotations,
            },
            "recentActivity": [dict(r) for r in recent],
        }

    @classmethod
    async def charts(cls, period: str = "30d", chart_type: str = "all") -> Dict[str, List[Dict[str, Any]]]:
        """Chart series for the last ``period`` days.

        Parameters
        ----------
        period : str
            ``7d``, ``30d`` or ``90d``; unknown values fall back to 90 days.
        chart_type : str
            One of ``queries``, ``quotations``, ``status``, ``machines`` or
            ``all``.

        Returns
        -------
        dict
            ``queriesTrend`` and ``quotationsTrend`` hold one entry per day
            that has data; ``quotationStatus`` counts quotations per status;
            ``machineUtilization`` lists the most quoted machines.
        """
        if chart_type != "all" and chart_type not in CHART_TYPES:
            raise ValueError(f"Invalid chart type. Must be one of: all, {', '.join(CHART_TYPES)}")
        since = (f"-{PERIOD_DAYS.get(period, 90)} day",)
        wanted = CHART_TYPES if chart_type == "all" else (chart_type,)
        conn = get_connection()
        try:
            data: Dict[str, List[Dict[str, Any]]] = {}
            if "queries" in wanted:
                data["queriesTrend"] = [dict(r) for r in conn.execute(
                    """
                    SELECT DATE(created_at) AS date, COUNT(*) AS count
                    FROM customer_queries WHERE DATE(created_at) >= DATE('now', ?)
                    GROUP BY DATE(created_at) ORDER BY date
                    """,
                    since,
                ).fetchall()]
            if "quotations" in wanted:
                data["quotationsTrend"] = [dict(r) for r in conn.execute(
                    """
                    SELECT DATE(created_at) AS date, COUNT(*) AS count, ROUND(COALESCE(SUM(grand_total), 0), 2) AS value
                    FROM quotations WHERE DATE(created_at) >= DATE('now', ?)
                    GROUP BY DATE(created_at) ORDER BY date
                    """,
                    since,
                ).fetchall()]
            if "status" in wanted:
                data["quotationStatus"] = [dict(r) for r in conn.execute(
                    """
                    SELECT quotation_status AS status, COUNT(*) AS count
                    FROM quotations WHERE DATE(created_at) >= DATE('now', ?)
                    GROUP BY quotation_status ORDER BY count DESC, status
                    """,
                    since,
                ).fetchall()]
            if "machines" in wanted:
                data["machineUtilization"] = [dict(r) for r in conn.execute(
                    """
                    SELECT m.machine_number, m.name, COUNT(DISTINCT qi.quotation_id) AS quotations
                    FROM quotation_items qi
                    JOIN machines m ON m.id = qi.machine_id
                    JOIN quotations q ON q.id = qi.quotation_id
                    WHERE DATE(q.created_at) >= DATE('now', ?)
                    GROUP BY m.id ORDER BY quotations DESC, m.machine_number LIMIT 10
                    """,
                    since,
                ).fetchall()]
            return data
        finally:
            conn.close()

    @classmethod
    async def performance(cls, period: str = "30d") -> Dict[str, Any]:
        """Query and quotation performance restricted to the last ``period`` days."""
        days = PERIOD_DAYS.get(period, 90)
        since = (f"-{days} day",)
        conn = get_connection()
        try:
            queries = conn.execute(
                """
                SELECT COUNT(*) AS total,
                       COALESCE(SUM(CASE WHEN status = 'completed' THEN 1 ELSE 0 END), 0) AS completed
                FROM customer_queries WHERE DATE(created_at) >= DATE('now', ?)
                """,
                since,
            ).fetchone()
            quotations = conn.execute(
                """
                SELECT COUNT(*) AS total,
                       COALESCE(SUM(CASE WHEN quotation_status = 'accepted' THEN 1 ELSE 0 END), 0) AS accepted,
                       COALESCE(SUM(CASE WHEN delivery_status IN ('delivered', 'completed') THEN 1 ELSE 0 END), 0)
                           AS delivered,
                       COALESCE(SUM(grand_total), 0) AS value,
                       COALESCE(SUM(CASE WHEN quotation_status = 'accepted' THEN grand_total ELSE 0 END), 0)
                           AS accepted_value
                FROM quotations WHERE DATE(created_at) >= DATE('now', ?)
                """,
                since,
            ).fetchone()
            services = conn.execute(
                "SELECT COUNT(*) FROM service_records WHERE DATE(service_date) >= DATE('now', ?)", since
            ).fetchone()[0]
        finally:
            conn.close()
        return {
            "period": period,
            "days": days,
            "queries": {
                "total": queries["total"],
                "completed": queries["completed"],
                "resolutionRate": _rate(queries["completed"], queries["total"]),
            },
            "quotations": {
                "total": quotations["total"],
                "accepted": quotations["accepted"],
                "delivered": quotations["delivered"],
                "conversionRate": _rate(quotations["accepted"], quotations["total"]),
                "deliveryRate": _rate(quotations["delivered"], quotations["total"]),
                "totalValue": round(quotations["value"], 2),
                "acceptedValue": round(quotations["accepted_value"], 2),
                "averageValue": round(quotations["value"] / quotations["total"], 2) if quotations["total"] else 0,
            },
            "serviceRecords": services,
        }
