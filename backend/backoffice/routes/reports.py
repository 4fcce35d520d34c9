# Overview: Flask API routes for buys and inventory reports; JSON and streamed CSV.

from flask import Blueprint, Response, jsonify, request, stream_with_context, current_app

from ..domain import csv_export
from ..services import reporting_service
from ..services.tenant_service import TenantAccessError
from ..time_utils import utcnow
from ..validation import ValidationError, parse_date, parse_int
from ..decorators import store_scoped


reports_bp = Blueprint("reports", __name__, url_prefix="/api/stores/<int:store_id>/reports")


def _filters() -> dict:
    kind = request.args.get("kind", reporting_service.KIND_ALL)
    if kind not in reporting_service.KINDS:
        raise ValidationError(f"kind must be one of: {', '.join(reporting_service.KINDS)}")
    raw_ids = request.args.getlist("category_id")
    return {
        "kind": kind,
        "category_ids": [parse_int(v, "category_id") for v in raw_ids] or None,
    }


def _daily_range():
    default_start, default_end = reporting_service.default_daily_range()
    return (
        parse_date(request.args.get("start"), "start", default=default_start),
        parse_date(request.args.get("end"), "end", default=default_end),
    )


def _monthly_range():
    default_start, default_end = reporting_service.default_monthly_range()
    return (
        parse_date(request.args.get("start"), "start", default=default_start),
        parse_date(request.args.get("end"), "end", default=default_end),
    )


def _csv_response(lines, filename: str) -> Response:
    return Response(
        stream_with_context(lines),
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _build(report_fn, range_fn=None, **extra):
    if range_fn is not None:
        start, end = range_fn()
        extra.update(start=start, end=end)
    return report_fn(**extra, **_filters())


# =============================================================================
# BUYS REPORTS (JSON)
# =============================================================================

def _json_report(store_id: int, report_fn, range_fn=None, **extra):
    try:
        report = _build(report_fn, range_fn, store_id=store_id, **extra)
        return jsonify(report), 200
    except (ValidationError, reporting_service.ReportError) as exc:
        return jsonify({"error": str(exc)}), 400
    except TenantAccessError as exc:
        return jsonify({"error": str(exc)}), 404
    except Exception:
        current_app.logger.exception("Failed to build report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/buys/daily")
@store_scoped
def daily_buys_report(store_id: int):
    return _json_report(store_id, reporting_service.daily_buys, _daily_range)


@reports_bp.get("/buys/daily/trend")
@store_scoped
def daily_buys_trend_report(store_id: int):
    return _json_report(store_id, reporting_service.daily_buys_trend, _daily_range)


@reports_bp.get("/buys/monthly")
@store_scoped
def monthly_buys_report(store_id: int):
    return _json_report(store_id, reporting_service.monthly_buys, _monthly_range)


@reports_bp.get("/buys/yearly")
@store_scoped
def yearly_buys_report(store_id: int):
    try:
        years = parse_int(
            request.args.get("years", current_app.config.get("REPORT_DEFAULT_YEARS", 5)),
            "years",
            minimum=1,
        )
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), 400
    return _json_report(store_id, reporting_service.yearly_buys, years=years)


@reports_bp.get("/buys/transactions")
@store_scoped
def buy_transactions_report(store_id: int):
    return _json_report(store_id, reporting_service.buy_transactions, _daily_range)


@reports_bp.get("/buys/categories")
@store_scoped
def category_breakdown_report(store_id: int):
    return _json_report(store_id, reporting_service.category_breakdown, _monthly_range)


# =============================================================================
# BUYS REPORTS (CSV)
# =============================================================================

_CSV_REPORTS = {
    "daily": (reporting_service.daily_buys, _daily_range, csv_export.BUYS_HEADER, csv_export.buys_rows),
    "monthly": (reporting_service.monthly_buys, _monthly_range, csv_export.BUYS_HEADER, csv_export.buys_rows),
    "transactions": (
        reporting_service.buy_transactions, _daily_range,
        csv_export.TRANSACTIONS_HEADER, csv_export.transaction_rows,
    ),
    "categories": (
        reporting_service.category_breakdown, _monthly_range,
        csv_export.CATEGORY_HEADER, csv_export.category_rows,
    ),
}


@reports_bp.get("/buys/<string:view>.csv")
@store_scoped
def buys_report_csv(store_id: int, view: str):
    if view not in _CSV_REPORTS:
        return jsonify({"error": "Report not found"}), 404
    report_fn, range_fn, header, shape = _CSV_REPORTS[view]
    try:
        report = _build(report_fn, range_fn, store_id=store_id)
    except (ValidationError, reporting_service.ReportError) as exc:
        return jsonify({"error": str(exc)}), 400
    except TenantAccessError as exc:
        return jsonify({"error": str(exc)}), 404

    filename = f"buys-{view}-{utcnow():%Y-%m-%d}.csv"
    lines = csv_export.iter_csv(header, shape(report["rows"], report["totals"]))
    return _csv_response(lines, filename)


@reports_bp.get("/buys/yearly.csv")
@store_scoped
def yearly_buys_csv(store_id: int):
    try:
        years = parse_int(request.args.get("years", current_app.config.get("REPORT_DEFAULT_YEARS", 5)), "years", minimum=1)
        report = _build(reporting_service.yearly_buys, store_id=store_id, years=years)
    except (ValidationError, reporting_service.ReportError) as exc:
        return jsonify({"error": str(exc)}), 400

    lines = csv_export.iter_csv(csv_export.BUYS_HEADER, csv_export.buys_rows(report["rows"], report["totals"]))
    return _csv_response(lines, f"buys-yearly-{utcnow():%Y-%m-%d}.csv")


# =============================================================================
# INVENTORY
# =============================================================================

@reports_bp.get("/inventory/categories")
@store_scoped
def inventory_category_report(store_id: int):
    try:
        parent = request.args.get("parent_id")
        since = request.args.get("since")
        report = reporting_service.inventory_category_report(
            store_id=store_id,
            parent_category_id=parse_int(parent, "parent_id") if parent else None,
            since=parse_date(since, "since") if since else None,
        )
        return jsonify(report), 200
    except (ValidationError, reporting_service.ReportError) as exc:
        return jsonify({"error": str(exc)}), 400
    except TenantAccessError as exc:
        return jsonify({"error": str(exc)}), 404


@reports_bp.get("/inventory/summary")
@store_scoped
def inventory_summary_report(store_id: int):
    return jsonify(reporting_service.stock_summary(store_id=store_id)), 200
