from evalsheet.extraction.grid import ListGrid
from evalsheet.extraction.locator import detect_columns, find_table_start, scan_metadata
from evalsheet.extraction.trace import TraceLog


def test_find_table_start_returns_row_below_sentinel(sheet_rows):
    assert find_table_start(ListGrid(sheet_rows)) == 4


def test_find_table_start_without_sentinel_warns():
    trace = TraceLog("empty")
    assert find_table_start(ListGrid([["a", "b"], ["c"]]), trace=trace) is None
    assert [e.message for e in trace.events if e.warning] == ["no table sentinel in sheet"]


def test_detect_columns_from_sentinel_row(sheet_rows):
    roles = detect_columns(ListGrid(sheet_rows), 4)
    assert roles.evaluation_col == 3
    assert roles.comment_col == 4
    assert roles.header_row == 3
    assert roles.data_start_row == 4


def test_detect_columns_from_caption_row_below_sentinel():
    rows = [
        ["評価項目"],
        [None, None, "評価", "コメント"],
        ["①", "納期", "1:Good", "ok"],
    ]
    roles = detect_columns(ListGrid(rows), 1)
    assert (roles.evaluation_col, roles.comment_col) == (2, 3)
    assert roles.header_row == 1
    assert roles.data_start_row == 2


def test_detect_columns_falls_back_to_evaluation_codes():
    rows = [
        ["評価項目"],
        ["1.品質"],
        ["①", "納期", None, "1:Good", None, "丁寧な対応"],
        ["②", "対応", None, "2:Fair"],
    ]
    trace = TraceLog()
    roles = detect_columns(ListGrid(rows), 1, trace=trace)
    assert roles.evaluation_col == 3
    assert roles.comment_col == 5
    assert any("evaluation codes" in e.message for e in trace.events)


def test_detect_columns_defaults_comment_next_to_evaluation():
    rows = [["評価項目", None, "評価"], ["①", "納期", "1:Good"]]
    roles = detect_columns(ListGrid(rows), 1)
    assert (roles.evaluation_col, roles.comment_col) == (2, 3)


def test_detect_columns_without_evaluation_column():
    trace = TraceLog()
    assert detect_columns(ListGrid([["評価項目"], ["free text"]]), 1, trace=trace) is None
    assert any(e.warning for e in trace.events)


def test_scan_metadata_keeps_first_seen_order(sheet_rows):
    metadata = scan_metadata(ListGrid(sheet_rows), 4)
    assert list(metadata) == ["顧客名", "評価日", "担当者"]
    assert metadata["評価日"] == "05/01/2024"


def test_scan_metadata_overwrites_value_in_place():
    rows = [["部署", "営業"], ["担当者", "山田"], ["部署", "開発"]]
    metadata = scan_metadata(ListGrid(rows), None)
    assert list(metadata.items()) == [("部署", "開発"), ("担当者", "山田")]


def test_scan_metadata_skips_notes():
    rows = [["備考", "自由記述"], ["氏名", "※ 必須"], ["氏名", "佐藤"]]
    assert scan_metadata(ListGrid(rows), None) == {"氏名": "佐藤"}


def test_scan_metadata_stops_at_table():
    rows = [["氏名", "佐藤"], ["評価項目", "評価"], ["場所", "東京"]]
    assert scan_metadata(ListGrid(rows), 2) == {"氏名": "佐藤"}
