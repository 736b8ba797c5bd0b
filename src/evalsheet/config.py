from pathlib import Path
from typing import Optional
from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict
import yaml

from evalsheet.exceptions import ConfigError

class AppSettings(BaseSettings):
    name: str = "evalsheet"
    version: str = "1.0.0"

class PathSettings(BaseSettings):
    output_dir: Path = Path("./exports")
    db_path: Path = Path("./data/evalsheet.db")


class ExtractionSettings(BaseSettings):
    """
    Textual constants the extractor and the pivot builder share.
    Defaults match the Japanese evaluation-sheet templates in use.
    """
    table_sentinel: str = "評価項目"
    evaluation_header: str = "評価"
    comment_header: str = "コメント"
    priority_marker: str = "より満足いただくために"
    request_marker: str = "ご要望等"
    note_glyph: str = "※"
    note_keywords: list[str] = ["お願い", "注意", "注", "備考", "説明", "選択ボックス"]

    main_item_pattern: str = r"^(?:[0-9０-９]+\.|(?:I{1,3}|IV|V|VI|VII|VIII)\.)[^①②③④⑤⑥⑦]"
    priority_header_pattern: str = (
        r"^(?:[1-4１-４]\.[①②③④⑤⑥⑦]|[<＜][1-4１-４][>＞])$"
    )
    rank_pattern: str = r"^\s*[<＜]?([0-9０-９]+)\s*(?:[>＞]|[.．]|[①②③④⑤⑥⑦⑧⑨⑩])"
    leading_number_pattern: str = r"^([0-9０-９]+)"
    evaluation_code_pattern: str = r"^\d+:(?:Not Related|[A-Za-z]+)$"
    enumerator_pattern: str = r"^[①②③④⑤⑥⑦１-７1-7]$"
    angle_marker_pattern: str = r"^[<>＜＞]$"

    fallback_scan_rows: int = 10
    serial_date_min: float = 25569
    serial_date_max: float = 73050

    summary_sheet_prefix: str = "評価結果リスト_"
    cover_sheet_name: str = "表紙"
    empty_template_category: str = "EmptyTemplate"


class ExportSettings(BaseSettings):
    evaluation_label: str = "Evaluation"
    comment_label: str = "Comment"
    response_column: str = "File Name"
    request_joiner: str = " | "
    font_name: str = "Times New Roman"
    font_size: int = 12
    data_row_height: float = 40
    max_column_width: float = 60
    template_display_prefix: str = "Template Type "
    short_labels: dict[str, str] = {
        "priority": "より満足いただくため",
        "request": "ご要望",
    }


class SecuritySettings(BaseSettings):
    """
    Optional auth and request guardrails.
    """
    api_token: Optional[str] = None  # Bearer token or X-API-Key
    basic_user: Optional[str] = None
    basic_pass: Optional[str] = None
    max_upload_mb: int = 15  # Hard cap for uploads (Content-Length guard)

class LoggingSettings(BaseSettings):
    log_requests: bool = True
    level: str = "INFO"

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="EVALSHEET_", env_nested_delimiter="__", env_file=".env", extra="ignore"
    )
    app: AppSettings = AppSettings()
    paths: PathSettings = PathSettings()
    extraction: ExtractionSettings = ExtractionSettings()
    export: ExportSettings = ExportSettings()
    security: SecuritySettings = SecuritySettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Settings":
        # Load from default path if exists
        default_path = Path("config/settings.yaml")
        path = config_path or (default_path if default_path.exists() else None)

        if not path:
            return cls()

        try:
            with open(path, "r", encoding="utf-8") as f:
                config_data = yaml.safe_load(f) or {}
            return cls(**config_data)
        except (OSError, yaml.YAMLError, ValidationError) as exc:
            raise ConfigError(f"Invalid configuration in {path}: {exc}") from exc

settings = Settings.load()
