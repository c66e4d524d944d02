"""HTML fragment rendering for the GMP cards section."""

from __future__ import annotations

from datetime import datetime, timedelta
from html import escape
from typing import Dict, List, Mapping

import pytz

from gmp_pipeline import config
from gmp_pipeline.scraper import parse_utils
from gmp_pipeline.scraper.models import STATUS_ORDER, GmpRow, Status

SECTION_HEADINGS = {
    Status.ACTIVE: "Active IPOs",
    Status.UPCOMING: "Upcoming IPOs",
    Status.CLOSED: "Closed / Listed",
}

PLACEHOLDER = "—"


def esc(value: object) -> str:
    return escape("" if value is None else str(value), quote=True)


def next_run_after(now: datetime, interval_minutes: int = config.RUN_INTERVAL_MINUTES) -> datetime:
    """Next scheduled run, assuming runs aligned to the interval from midnight."""
    interval = max(int(interval_minutes), 1)
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    elapsed = int((now - midnight).total_seconds() // 60)
    return midnight + timedelta(minutes=(elapsed // interval + 1) * interval)


def display_timestamp(now: datetime) -> str:
    local = now.astimezone(pytz.timezone(config.TZ_DISPLAY))
    return local.strftime("%d/%m/%Y, %H:%M:%S")


def render_card(row: GmpRow, hidden: bool = False) -> str:
    label, css_class = parse_utils.gmp_label_and_class(row.gmp_raw)
    status = row.status.value
    hidden_class = " hidden-by-lazy" if hidden else ""
    return f"""
  <div class="ipo-card{hidden_class}" data-status="{status}">
    <div class="card-grid">
      <div class="col col-name">
        <div class="ipo-title">{esc(row.name)}</div>
        <div class="gmp-row">
          <span class="gmp-label meta-label">GMP</span>
          <span class="meta-value gmp-value {css_class}">{esc(label) or PLACEHOLDER}</span>
        </div>
      </div>

      <div class="col col-status">
        <span class="badge {status}">{status.capitalize()}</span>
      </div>

      <div class="col col-meta">
        <div class="meta-item-inline">
          <span class="meta-label">Date</span>
          <span class="meta-value">{esc(row.date_text) or PLACEHOLDER}</span>
        </div>
      </div>

      <div class="col col-link">
        <a class="ipo-link" href="/ipo/{parse_utils.slugify(row.name)}" rel="noopener" title="Open {esc(row.name)} page">View</a>
      </div>
    </div>

    <div class="card-row-details" aria-hidden="true">
      <div><strong>Kostak:</strong> {esc(row.price_text) or PLACEHOLDER}</div>
      <div><strong>Subject to Sauda:</strong> {esc(row.gain_text) or PLACEHOLDER}</div>
      <div><strong>Type:</strong> {esc(row.type_text) or PLACEHOLDER}</div>
    </div>
  </div>"""


def render_cards(groups: Mapping[Status, List[GmpRow]], show_batch: int = config.SHOW_BATCH) -> str:
    """Render section headings and cards; cards past ``show_batch`` start hidden."""
    parts: List[str] = []
    shown = 0
    for status in STATUS_ORDER:
        rows = groups.get(status) or []
        if not rows:
            continue
        parts.append(f'<h3 class="section-heading">{SECTION_HEADINGS[status]}</h3>')
        for row in rows:
            parts.append(render_card(row, hidden=shown >= show_batch))
            shown += 1
    return "\n".join(parts)


def render_fragment(
    groups: Mapping[Status, List[GmpRow]],
    now: datetime,
    show_batch: int = config.SHOW_BATCH,
) -> str:
    """Render the complete ``#gmp-wrapper`` block for injection into the page.

    The output depends only on ``groups`` and ``now``.
    """
    counts: Dict[Status, int] = {status: len(groups.get(status) or []) for status in STATUS_ORDER}
    next_run = next_run_after(now)
    cards = render_cards(groups, show_batch=show_batch)
    return f"""<div id="gmp-wrapper">
<div id="gmp-controls" class="sticky-filters">
  <button class="filter-btn active" data-filter="all">All ({sum(counts.values())})</button>
  <button class="filter-btn" data-filter="active">Active ({counts[Status.ACTIVE]})</button>
  <button class="filter-btn" data-filter="upcoming">Upcoming ({counts[Status.UPCOMING]})</button>
  <button class="filter-btn" data-filter="closed">Closed ({counts[Status.CLOSED]})</button>
</div>

<div class="gmp-meta-line">
  <div class="updated">Last updated: <strong id="gmp-last-updated">{esc(display_timestamp(now))}</strong></div>
  <div class="next-run">Next run: <span id="gmp-next-run">calculating...</span></div>
</div>

<div id="gmp-cards">
{cards}
</div>
<div id="load-more-wrap"><button id="load-more-btn" class="load-more-btn">Load more</button></div>
<div style="display:none" id="gmp-meta" data-updated="{esc(now.isoformat())}" data-next-run="{esc(next_run.isoformat())}"></div>
</div>"""
