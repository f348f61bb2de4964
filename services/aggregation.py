"""Dashboard statistics and CSV export over extraction results.

Every function here is pure: it reads a sequence of ExtractionResult objects
and returns new values without touching the input.
"""

from __future__ import annotations

import csv
import io
from collections import Counter
from typing import Any, Dict, List, Sequence
from urllib.parse import quote, urlencode

from models.extraction_result import SLIP_FIELDS, ExtractionResult
from services.normalizer import canonicalize_bank_name

EXPORT_FILENAME = "slip_data.csv"
EXPORT_HEADERS = [
    "Image ID",
    "View Image URL",
    "Sender Name",
    "Recipient Name",
    "Amount",
    "Transaction Date",
    "Transaction Time",
    "Transaction ID",
    "Sender Bank Name",
    "Sender Bank Account Number",
    "Recipient Bank Name",
    "Recipient Bank Account Number",
    "Country",
]
IMAGE_ID_PLACEHOLDER = "{image_id}"
UNKNOWN_BANK = "-"


def total_count(results: Sequence[ExtractionResult]) -> int:
    return len(results)


def total_amount(results: Sequence[ExtractionResult]) -> float:
    return sum((item.parsed_amount or 0.0) for item in results)


def filter_by_search(results: Sequence[ExtractionResult], query: str) -> List[ExtractionResult]:
    """Keep results where the image id or any field contains `query` (case-insensitive)."""
    if not query:
        return list(results)
    needle = query.lower()

    def _matches(item: ExtractionResult) -> bool:
        haystack = [item.image_id] + [item.get(name) for name in SLIP_FIELDS]
        return any(needle in value.lower() for value in haystack if value)

    return [item for item in results if _matches(item)]


def daily_frequency(results: Sequence[ExtractionResult]) -> List[Dict[str, Any]]:
    """Count transactions per date, most frequent first; ties keep first-seen order."""
    counts = Counter(item.get("transaction_date") for item in results if item.get("transaction_date"))
    ranked = sorted(counts.items(), key=lambda entry: entry[1], reverse=True)
    return [{"date": date, "count": count} for date, count in ranked]


def top_recipient_accounts(results: Sequence[ExtractionResult], limit: int = 5) -> List[Dict[str, Any]]:
    """Rank recipient accounts by number of transfers received.

    Args:
        results: Extraction results to aggregate.
        limit: Maximum number of accounts to return.

    Returns:
        Dicts with account_number, transaction_count, total_amount_transferred
        and bank_name, sorted by transaction_count descending.
    """
    if limit <= 0:
        return []

    stats: Dict[str, Dict[str, Any]] = {}
    for item in results:
        account = item.get("recipient_bank_account_number")
        if not account:
            continue
        entry = stats.setdefault(account, {"count": 0, "amount": 0.0, "bank": ""})
        entry["count"] += 1
        entry["amount"] += item.parsed_amount or 0.0
        bank = item.get("recipient_bank_name")
        if not entry["bank"] and bank:
            entry["bank"] = bank

    ranked = sorted(stats.items(), key=lambda pair: pair[1]["count"], reverse=True)
    return [
        {
            "account_number": account,
            "transaction_count": entry["count"],
            "total_amount_transferred": entry["amount"],
            "bank_name": entry["bank"] or UNKNOWN_BANK,
        }
        for account, entry in ranked[:limit]
    ]


def bank_usage_distribution(results: Sequence[ExtractionResult]) -> List[Dict[str, Any]]:
    """Count transfers per canonical recipient bank, most used first."""
    counts: Counter = Counter()
    for item in results:
        bank = item.get("recipient_bank_name")
        if not bank:
            continue
        counts[canonicalize_bank_name(bank)] += 1
    ranked = sorted(counts.items(), key=lambda entry: entry[1], reverse=True)
    return [{"name": name, "value": value} for name, value in ranked]


def dashboard_summary(results: Sequence[ExtractionResult], *, top_limit: int = 5) -> Dict[str, Any]:
    return {
        "total_count": total_count(results),
        "total_amount": total_amount(results),
        "daily_frequency": daily_frequency(results),
        "top_recipient_accounts": top_recipient_accounts(results, limit=top_limit),
        "bank_usage": bank_usage_distribution(results),
    }


def build_viewer_url_template(base_url: str, app_id: str, user_id: str) -> str:
    """Return the image viewer URL with an `{image_id}` placeholder.

    The caller context (app and user id) is URL-encoded into the query string
    so the viewer page can locate the image in the caller's namespace.
    """
    context = urlencode({"appId": app_id, "userId": user_id})
    return f"{base_url.rstrip('/')}/image_viewer?imageId={IMAGE_ID_PLACEHOLDER}&{context}"


def to_export_document(results: Sequence[ExtractionResult], image_viewer_url_template: str) -> str:
    """Render results as CSV text with every value quoted.

    Args:
        results: Extraction results in display order.
        image_viewer_url_template: URL containing `{image_id}`, see build_viewer_url_template.

    Returns:
        CSV text (no BOM) with the fixed header row followed by one row per result.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(EXPORT_HEADERS)
    for item in results:
        view_url = image_viewer_url_template.replace(IMAGE_ID_PLACEHOLDER, quote(item.image_id, safe=""))
        writer.writerow([item.image_id, view_url] + [item.get(name) for name in SLIP_FIELDS])
    return buffer.getvalue()


def encode_export_document(document: str) -> bytes:
    """Encode CSV text as UTF-8 with a byte-order mark so spreadsheets detect the encoding."""
    return ("\ufeff" + document).encode("utf-8")
