"""
Read-only web view over the current snapshot.

- ``GET /``              auto-refreshing HTML table with tier row emphasis
- ``GET /api/snapshot``  the same rows as JSON

The app only ever calls ``SnapshotStore.current()``.
"""

from datetime import datetime
from html import escape
from typing import Optional

import pytz
from fastapi import FastAPI
from fastapi.responses import HTMLResponse

from catalyst_scanner.models.datatypes import DisplayRecord, Snapshot
from catalyst_scanner.pipeline.snapshot import SnapshotStore

_PAGE = """<html>
<head>
    <meta http-equiv="refresh" content="{refresh}">
    <title>Catalyst Scanner</title>
    <style>
        body {{ font-family: Arial; background: #111; color: #eee; }}
        table {{ width: 100%; border-collapse: collapse; }}
        th, td {{ padding: 8px; border-bottom: 1px solid #333; text-align: left; }}
        th {{ background: #222; }}
        tr:hover {{ background: #1a1a1a; }}
        a {{ color: inherit; }}
        tr.tier-bright {{ background: #3a3000; color: #ffe066; font-weight: bold; }}
        tr.tier-soft {{ background: #2a2410; color: #f2d98c; }}
        tr.tier-high {{ color: #888; }}
        td.up {{ color: #4cd964; }}
        td.down {{ color: #ff5b5b; }}
    </style>
</head>
<body>
    <h2>Catalyst Scanner</h2>
    <p>{count} catalysts{updated}</p>
    <table>
        <tr>
            <th>Timestamp ({tz_label})</th>
            <th>Symbol</th>
            <th>Price</th>
            <th>% Change</th>
            <th>Float</th>
            <th>Headline</th>
        </tr>
{rows}
    </table>
</body>
</html>
"""


def render_row(record: DisplayRecord) -> str:
    direction = "up" if record.percent_change > 0 else "down" if record.percent_change < 0 else ""
    headline = escape(record.headline)
    if record.link:
        headline = f'<a href="{escape(record.link, quote=True)}" target="_blank">{headline}</a>'
    return (
        f'        <tr class="tier-{escape(record.tier)}">'
        f"<td>{escape(record.timestamp_local)}</td>"
        f"<td><strong>{escape(record.symbol)}</strong></td>"
        f"<td>{escape(record.price)}</td>"
        f'<td class="{direction}">{record.percent_change:+.2f}%</td>'
        f"<td>{escape(record.float_display)}</td>"
        f"<td>{headline}</td></tr>"
    )


def timezone_label(timezone_name: str, now: Optional[datetime] = None) -> str:
    """Abbreviation of the display timezone in effect at ``now`` (e.g. PST or PDT)."""
    tz = pytz.timezone(timezone_name)
    moment = now.astimezone(tz) if now is not None else datetime.now(tz)
    return moment.tzname() or timezone_name


def render_page(snapshot: Snapshot, refresh_seconds: int = 30, tz_label: str = "UTC") -> str:
    updated = ""
    if snapshot.generated_at is not None:
        updated = f" &middot; updated {snapshot.generated_at:%Y-%m-%d %H:%M:%S} UTC"
    return _PAGE.format(
        refresh=refresh_seconds,
        count=len(snapshot),
        updated=updated,
        tz_label=escape(tz_label),
        rows="\n".join(render_row(r) for r in snapshot.records),
    )


def create_app(
    store: SnapshotStore,
    refresh_seconds: int = 30,
    timezone_name: str = "America/Los_Angeles",
) -> FastAPI:
    """Build the FastAPI app bound to ``store``.

    ``timezone_name`` must match the zone the assembler formats timestamps in.
    """
    app = FastAPI(title="Catalyst Scanner", version="0.1.0")

    @app.get("/", response_class=HTMLResponse)
    def index() -> str:
        return render_page(store.current(), refresh_seconds, timezone_label(timezone_name))

    @app.get("/api/snapshot")
    def snapshot() -> dict:
        current = store.current()
        return {
            "cycle": current.cycle,
            "timezone": timezone_name,
            "generated_at": current.generated_at.isoformat() if current.generated_at else None,
            "records": [r.to_dict() for r in current.records],
        }

    return app
