import datetime as dt

import pytest

from csp_collector.analytics import AnalyticsStore
from csp_collector.schemas import CspReport, ReportRecord


@pytest.fixture
def store(tmp_path):
    analytics = AnalyticsStore(tmp_path / "reports.duckdb", pool_size=2)
    analytics.create_schema()
    yield analytics
    analytics.close()


def _record(directive: str, created_at: dt.datetime | None = None, **fields) -> ReportRecord:
    report = CspReport(violated_directive=directive, effective_directive=directive.split(" ")[0], **fields)
    return ReportRecord.from_report(report, created_at=created_at or dt.datetime.now(dt.timezone.utc))


def test_create_schema_is_idempotent(store):
    store.create_schema()
    assert store.list_reports() == []


def test_append_batch_round_trips_records(store):
    created = dt.datetime(2026, 3, 1, 10, 30, 15, 123456, tzinfo=dt.timezone.utc)
    full = _record(
        "script-src 'self'",
        created,
        document_uri="https://example.com/",
        blocked_uri="inline",
        line_number=4,
        column_number=2,
        status_code=200,
        source_file="https://example.com/app.js",
        script_sample="alert(1)",
    )
    bare = _record("img-src", created)
    assert store.append_batch([full, bare]) == 2

    first, second = store.list_reports()
    assert first.document_uri == "https://example.com/"
    assert first.line_number == 4
    assert first.status_code == 200
    assert first.script_sample == "alert(1)"
    assert first.created_at.replace(tzinfo=None) == dt.datetime(2026, 3, 1, 10, 30, 15, 123456)
    assert second.blocked_uri is None
    assert second.line_number is None
    assert second.source_file is None
    assert first.model_dump(mode="json", by_alias=True)["createdAt"] == "2026-03-01T10:30:15.123Z"


def test_append_empty_batch_is_noop(store):
    assert store.append_batch([]) == 0
    assert store.list_reports() == []


def test_list_reports_pagination(store):
    store.append_batch([_record(f"script-src {i}") for i in range(6)])
    store.append_batch([_record("script-src 6")])

    assert [r.violated_directive for r in store.list_reports()] == [f"script-src {i}" for i in range(7)]
    assert [r.violated_directive for r in store.list_reports(limit=2)] == ["script-src 0", "script-src 1"]
    assert [r.violated_directive for r in store.list_reports(limit=2, offset=3)] == [
        "script-src 3",
        "script-src 4",
    ]
    assert [r.violated_directive for r in store.list_reports(offset=5)] == ["script-src 5", "script-src 6"]


def test_distinct_reports_grouped_by_frequency(store):
    early = dt.datetime(2026, 1, 1, tzinfo=dt.timezone.utc)
    store.append_batch(
        [
            _record("img-src", early + dt.timedelta(hours=2)),
            _record("script-src", early + dt.timedelta(hours=1)),
            _record("script-src", early),
            _record("script-src", early + dt.timedelta(hours=3), blocked_uri="eval"),
            _record("img-src", early + dt.timedelta(hours=4)),
            _record("img-src", early + dt.timedelta(hours=5)),
        ]
    )

    distinct = store.list_distinct_reports()
    assert [(d.violated_directive, d.blocked_uri, d.count) for d in distinct] == [
        ("img-src", None, 3),
        ("script-src", None, 2),
        ("script-src", "eval", 1),
    ]
    assert distinct[1].first_seen.replace(tzinfo=None) == early.replace(tzinfo=None)
    assert sum(d.count for d in distinct) == len(store.list_reports())

    assert [d.count for d in store.list_distinct_reports(limit=1, offset=1)] == [2]


def test_violation_count_by_day_families(store):
    day = dt.datetime(2026, 5, 2, 12, tzinfo=dt.timezone.utc)
    store.append_batch(
        [
            _record("script-src-elem 'self'", day),
            _record("SCRIPT-SRC 'none'", day),
            _record("style-src-attr", day),
            _record("base-uri", day),
            _record("default-src", day),
            _record("img-src", day - dt.timedelta(days=1)),
        ]
    )

    rows = store.violation_count_by_day()
    assert [row.day for row in rows] == [dt.date(2026, 5, 1), dt.date(2026, 5, 2)]
    latest = rows[-1]
    assert latest.script_src == 2
    assert latest.style_src == 1
    assert latest.base_uri == 1
    assert latest.img_src == 0
    assert latest.font_src == 0
    assert rows[0].img_src == 1
    assert latest.model_dump(mode="json", by_alias=True)["script-src"] == 2


def test_violation_count_keeps_most_recent_days(store):
    start = dt.datetime(2026, 1, 1, 8, tzinfo=dt.timezone.utc)
    store.append_batch([_record("frame-src", start + dt.timedelta(days=i)) for i in range(20)])

    rows = store.violation_count_by_day(days=14)
    assert len(rows) == 14
    assert rows[0].day == dt.date(2026, 1, 7)
    assert rows[-1].day == dt.date(2026, 1, 20)
    assert all(a.day < b.day for a, b in zip(rows, rows[1:]))
    assert all(row.frame_src == 1 for row in rows)


def test_violation_count_never_exceeds_two_weeks(store):
    start = dt.datetime(2026, 1, 1, 8, tzinfo=dt.timezone.utc)
    store.append_batch([_record("img-src", start + dt.timedelta(days=i)) for i in range(20)])

    rows = store.violation_count_by_day(days=30)
    assert len(rows) == 14
    assert rows[-1].day == dt.date(2026, 1, 20)
