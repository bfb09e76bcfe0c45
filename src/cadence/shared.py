import inspect
import textwrap
import shutil
import os
from datetime import date, datetime
from pathlib import Path

from .rules import DATE_FMT

ELLIPSIS_CHAR = "…"

REPEATING = "↻"  # Flag for tasks with a repeat rule

_runtime_home: Path | None = None


def today_str(now: datetime | date | None = None) -> str:
    """'YYYYMMDD' for the calendar day of `now` (default: the current time)."""
    if now is None:
        now = datetime.now()
    return now.strftime(DATE_FMT)


def format_stored_date(date_str: str, fmt: str = "%Y-%m-%d") -> str:
    """
    Render a stored 'YYYYMMDD' date with a display format, leaving
    anything unparseable untouched.
    """
    try:
        return datetime.strptime(date_str, DATE_FMT).strftime(fmt)
    except (TypeError, ValueError):
        return date_str


def parse_search_date(query: str, fmt: str) -> str | None:
    """
    Return the 'YYYYMMDD' form of `query` when it is a date in the search
    format, else None.
    """
    try:
        return datetime.strptime(query.strip(), fmt).strftime(DATE_FMT)
    except ValueError:
        return None


def truncate_string(s: str, max_length: int) -> str:
    if len(s) > max_length:
        return f"{s[: max_length - 1]}{ELLIPSIS_CHAR}"
    return s


def set_runtime_home(home: str | Path | None) -> None:
    global _runtime_home
    _runtime_home = Path(home).expanduser() if home else None


def _get_runtime_home() -> Path:
    override = os.environ.get("CADENCE_HOME")
    if override:
        return Path(override).expanduser()
    if _runtime_home is not None:
        return _runtime_home
    from .cadence_env import CadenceEnvironment

    return CadenceEnvironment().home


def _resolve_log_file_path(file_path: str | Path) -> Path:
    path = Path(file_path)
    if path.is_absolute():
        return path
    return _get_runtime_home() / path


def _default_log_relative_path(kind: str) -> Path:
    """Return logs/log_<YYMMDD>.md style paths under the runtime home."""
    suffix = datetime.now().strftime("%y%m%d")
    return Path("logs") / f"{kind}_{suffix}.md"


def _caller_label(depth: int) -> str:
    """'Class.method' or 'function' for the frame `depth` levels above log_msg."""
    frame = inspect.stack()[depth + 1].frame
    name = frame.f_code.co_name
    owner = frame.f_locals.get("self")
    if owner is not None:
        return f"{type(owner).__name__}.{name}"
    return name


def log_msg(
    msg: str,
    file_path: str | Path | None = None,
    print_output: bool = False,
    depth: int = 1,
):
    """
    Append a timestamped, caller-labelled entry to the markdown log.

    Args:
        msg: the message; wrapped to the terminal width.
        file_path: relative to the runtime home unless absolute. Defaults to
            ``logs/log_<YYMMDD>.md``.
        print_output: also print the entry.
        depth: how many frames up the labelled caller sits; wrappers pass 2.
    """
    stamp = datetime.now().strftime("%H:%M:%S")
    width = max(shutil.get_terminal_size().columns - 6, 20)
    body = textwrap.wrap(
        msg.strip(), width=width, initial_indent="   ", subsequent_indent="   "
    )
    entry = f"- {stamp} ({_caller_label(depth)}):  \n" + "\n".join(body) + "\n\n"

    log_path = _resolve_log_file_path(file_path or _default_log_relative_path("log"))
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        with open(log_path, "a", encoding="utf-8") as f:
            f.write(entry)
    except OSError:
        # unwritable log file: print instead
        print_output = True

    if print_output:
        print(entry)
