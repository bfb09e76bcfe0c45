from pathlib import Path
import os
import tomllib
from pydantic import BaseModel, Field, ValidationError
from typing import Callable, Optional
from jinja2 import Template
from rich import print


# ─── Config Schema ─────────────────────────────────────────────────
class LimitsConfig(BaseModel):
    tasks: int = Field(50, ge=1)


class DatesConfig(BaseModel):
    search_format: str = "%d.%m.%Y"
    display_format: str = "%Y-%m-%d"


class LoggingConfig(BaseModel):
    enabled: bool = True


class CadenceConfig(BaseModel):
    title: str = "Cadence Configuration"
    limits: LimitsConfig = LimitsConfig()
    dates: DatesConfig = DatesConfig()
    logging: LoggingConfig = LoggingConfig()


# ─── Commented Template ────────────────────────────────────
CONFIG_TEMPLATE = """\
title = "{{ title }}"

[limits]
# tasks: int >= 1
# the maximum number of tasks shown by "list" and "search"
tasks = {{ limits.tasks }}

[dates]
# search_format: str
# a search query matching this strftime format is treated as a
# date search, e.g. "08.02.2024" for the default "%d.%m.%Y"
search_format = "{{ dates.search_format }}"

# display_format: str
# how stored YYYYMMDD dates are shown in tables
display_format = "{{ dates.display_format }}"

[logging]
# enabled: bool = true | false
# write task changes to logs/log_<YYMMDD>.md in the home directory
enabled = {{ logging.enabled | lower }}

"""

# ─── Save Config with Comments ───────────────────────────────


def render_config(config: CadenceConfig) -> str:
    template = Template(CONFIG_TEMPLATE)
    return template.render(**config.model_dump()).strip() + "\n"


def save_config_from_template(config: CadenceConfig, path: Path):
    path.write_text(render_config(config), encoding="utf-8")
    print(f"✅ Config with comments written to: {path}")


# ─── Main Environment Class ───────────────────────────────


class CadenceEnvironment:
    def __init__(self, home: Optional[str | Path] = None):
        self._home = Path(home).expanduser() if home else self._resolve_home()
        self._config: Optional[CadenceConfig] = None

    @property
    def home(self) -> Path:
        return self._home

    @property
    def config_path(self) -> Path:
        return self.home / "config.toml"

    @property
    def db_path(self) -> Path:
        return self.home / "cadence.db"

    def ensure(
        self,
        init_config: bool = True,
        init_db_fn: Optional[Callable[[Path], None]] = None,
    ):
        self.home.mkdir(parents=True, exist_ok=True)

        if init_config and not self.config_path.exists():
            save_config_from_template(CadenceConfig(), self.config_path)

        if init_db_fn and not self.db_path.exists():
            init_db_fn(self.db_path)

    def load_config(self) -> CadenceConfig:
        # Step 1: Create the file if it doesn't exist
        if not self.config_path.exists():
            config = CadenceConfig()
            self.home.mkdir(parents=True, exist_ok=True)
            save_config_from_template(config, self.config_path)
            self._config = config
            return config

        # Step 2: Try to load and validate the config
        try:
            with open(self.config_path, "rb") as f:
                data = tomllib.load(f)
            config = CadenceConfig.model_validate(data)
        except (ValidationError, tomllib.TOMLDecodeError) as e:
            print(f"⚠️ Config error in {self.config_path}: {e}\nUsing defaults.")
            config = CadenceConfig()

        # Step 3: Always regenerate the canonical version
        rendered = render_config(config)
        current_text = self.config_path.read_text(encoding="utf-8")

        if rendered != current_text:
            self.config_path.write_text(rendered, encoding="utf-8")
            print(f"✅ Updated {self.config_path} with any missing defaults.")

        self._config = config
        return config

    @property
    def config(self) -> CadenceConfig:
        if self._config is None:
            return self.load_config()
        return self._config

    def _resolve_home(self) -> Path:
        cwd = Path.cwd()
        if (cwd / "config.toml").exists() and (cwd / "cadence.db").exists():
            return cwd

        env_home = os.getenv("CADENCE_HOME")
        if env_home:
            return Path(env_home).expanduser()

        xdg_home = os.getenv("XDG_CONFIG_HOME")
        if xdg_home:
            return Path(xdg_home).expanduser() / "cadence"
        else:
            return Path.home() / ".config" / "cadence"
