import pytest

from evalsheet.config import Settings
from evalsheet.exceptions import ConfigError
from evalsheet.extraction.patterns import PatternTable


def test_yaml_overrides_nested_sections(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text(
        "extraction:\n"
        "  table_sentinel: Items\n"
        "  evaluation_header: Rating\n"
        "export:\n"
        "  request_joiner: ' / '\n",
        encoding="utf-8",
    )
    cfg = Settings.load(path)
    assert cfg.extraction.table_sentinel == "Items"
    assert cfg.extraction.comment_header == "コメント"
    assert cfg.export.request_joiner == " / "

    patterns = PatternTable.from_settings(cfg.extraction)
    assert patterns.evaluation_header == "Rating"
    assert patterns.is_evaluation_code("2:Fair")


def test_invalid_config_raises_config_error(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("extraction: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        Settings.load(path)

    path.write_text("security:\n  max_upload_mb: lots\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        Settings.load(path)
