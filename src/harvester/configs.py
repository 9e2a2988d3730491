"""ジョブ設定の読み込みと、実行ごとの不変スナップショット。

設定は環境変数（``HARVESTER_`` プレフィックス）と任意の JSON ファイルから
読み込みます。優先順位は 環境変数 > JSON ファイル > デフォルト値 です。

Example:
    >>> snapshot = load_snapshot(Path("harvester.json"))
    >>> snapshot.job_name
    'icse-2024'
    >>> snapshot.get(ScraperSettings).base_url
    'https://dl.acm.org'
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Literal, Mapping, TypeVar, cast

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from harvester.errors import ConfigurationError

ENV_PREFIX = "HARVESTER_"
JOB_NAME_ENV = f"{ENV_PREFIX}JOB_NAME"
JOB_NAME_KEY = "job_name"

DEFAULT_BASE_URL = "https://dl.acm.org"
DEFAULT_PROCEEDING_DOI = "10.1145/3597503"

LogLevel = Literal["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]


class PathsSettings(BaseModel):
    """出力ディレクトリの設定。

    各ディレクトリは ``{base_dir}/{job_name}/{dir}`` に解決されます。
    """

    model_config = ConfigDict(frozen=True)

    base_dir: Path = Path("data")
    paper_metadata_dir: str = "paper-metadata"
    pdf_data_dir: str = "pdfdata"
    paper_bin_dir: str = "paper-bin"

    def resolve(self, job_name: str | None, name: str) -> Path:
        """ジョブ名を挟んだディレクトリパスを返します。ジョブ名が空なら省略します。"""
        if job_name and job_name.strip():
            return self.base_dir / job_name.strip() / name
        return self.base_dir / name


class ScraperSettings(BaseModel):
    """ACM Digital Library へのアクセス設定。"""

    model_config = ConfigDict(frozen=True)

    base_url: str = DEFAULT_BASE_URL
    cookies: dict[str, str] = Field(default_factory=dict)
    user_agent: str = "ArchilogBot/1.0"
    timeout: float = 30.0
    proceeding_doi: str = DEFAULT_PROCEEDING_DOI


class HarvesterSettings(BaseSettings):
    """環境変数と JSON ファイルから組み立てるジョブ設定全体。"""

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    job_name: str | None = None
    log_level: LogLevel = "INFO"
    paths: PathsSettings = Field(default_factory=PathsSettings)
    scraper: ScraperSettings = Field(default_factory=ScraperSettings)

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # 初期化引数には JSON ファイルの値が入るため、環境変数を優先させる
        return (env_settings, init_settings)


SectionT = TypeVar("SectionT", bound=BaseModel)


@dataclass(frozen=True)
class ConfigurationSnapshot:
    """1回の実行で参照する、解決済みの不変な設定値。

    検証ステップとジョブはこの値だけを参照します。設定を読み直す場合は
    新しいスナップショットを作成し、既存のものは変更しません。

    Attributes:
        job_name: 実行中のジョブ名（未設定の場合は None）
        output_paths: ジョブが書き込むディレクトリ（順序付き、重複なし）
        log_level: loguru に渡すログレベル
    """

    job_name: str | None
    output_paths: tuple[Path, ...]
    log_level: LogLevel = "INFO"
    _sections: Mapping[type, BaseModel] = field(
        default_factory=lambda: MappingProxyType({}), repr=False
    )

    @classmethod
    def from_settings(cls, settings: HarvesterSettings) -> "ConfigurationSnapshot":
        paths = settings.paths
        dirs = (paths.paper_metadata_dir, paths.pdf_data_dir, paths.paper_bin_dir)
        output_paths = tuple(dict.fromkeys(paths.resolve(settings.job_name, d) for d in dirs))
        return cls(
            job_name=settings.job_name,
            output_paths=output_paths,
            log_level=settings.log_level,
            _sections=MappingProxyType(
                {PathsSettings: settings.paths, ScraperSettings: settings.scraper}
            ),
        )

    def get(self, section_type: type[SectionT]) -> SectionT:
        """指定した型の設定セクションを返します。

        Raises:
            KeyError: 登録されていない型が指定された場合
        """
        return cast(SectionT, self._sections[section_type])

    @property
    def paper_metadata_dir(self) -> Path:
        paths = self.get(PathsSettings)
        return paths.resolve(self.job_name, paths.paper_metadata_dir)

    @property
    def pdf_data_dir(self) -> Path:
        paths = self.get(PathsSettings)
        return paths.resolve(self.job_name, paths.pdf_data_dir)

    @property
    def paper_bin_dir(self) -> Path:
        paths = self.get(PathsSettings)
        return paths.resolve(self.job_name, paths.paper_bin_dir)


def read_config_file(config_file: Path) -> dict[str, Any]:
    """JSON 設定ファイルを読み込み、辞書として返します。

    Raises:
        ConfigurationError: ファイルが読めない、JSON として不正、
            またはトップレベルがオブジェクトでない場合
    """
    try:
        data = json.loads(config_file.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {config_file}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in config file {config_file}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {config_file} must contain a JSON object")
    return data


def load_settings(config_file: Path | None = None) -> HarvesterSettings:
    """環境変数と（指定があれば）JSON ファイルから設定を読み込みます。

    Raises:
        ConfigurationError: 設定ファイルまたは設定値が不正な場合
    """
    file_values = read_config_file(config_file) if config_file is not None else {}
    try:
        return HarvesterSettings(**file_values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def load_snapshot(config_file: Path | None = None) -> ConfigurationSnapshot:
    """設定を読み込み、今回の実行用のスナップショットを作成します。"""
    return ConfigurationSnapshot.from_settings(load_settings(config_file))
