"""
Run configuration for byterun.

Settings come from three layers, later ones winning:

    1. RunConfig defaults
    2. an optional JSON file (--config), keys mirror the long option names
    3. explicit command line flags

Byte values (addresses, preset values) accept 0x/$ hex or decimal:
    "0x1F", "$1F", "31"
"""

from __future__ import annotations
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple, Union

from .memory import MEMORY_SIZE, Memory

OUTPUT_FORMATS = ("hex", "json", "bin")


class ConfigError(Exception):
    """Raised on malformed settings, presets or memory images."""


def parse_byte(value: Union[str, int]) -> int:
    """Parse a byte that may be hex (0x.., $..) or decimal."""
    if isinstance(value, int) and not isinstance(value, bool):
        number = value
    else:
        text = str(value).strip()
        try:
            if text[:2].lower() == "0x":
                number = int(text[2:], 16)
            elif text.startswith("$"):
                number = int(text[1:], 16)  # Motorola hex convention
            else:
                number = int(text, 10)
        except ValueError:
            raise ConfigError(f"Not a number: {value!r}") from None
    if not 0 <= number <= 0xFF:
        raise ConfigError(f"Value out of byte range: {value!r}")
    return number


def parse_assignment(text: str) -> Tuple[int, int]:
    """'ADDR=VALUE' -> (addr, value)."""
    addr, sep, value = text.partition("=")
    if not sep:
        raise ConfigError(f"Expected ADDR=VALUE, got {text!r}")
    return parse_byte(addr), parse_byte(value)


def _parse_presets(raw: Union[Dict[str, Any], Iterable[str], None]) -> Dict[int, int]:
    if not raw:
        return {}
    if isinstance(raw, dict):
        return {parse_byte(a): parse_byte(v) for a, v in raw.items()}
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, (list, tuple)):
        raise ConfigError(f"'set' must be an object, a list or a string, got {raw!r}")
    for item in raw:
        if not isinstance(item, str):
            raise ConfigError(f"Preset must be an 'ADDR=VALUE' string, got {item!r}")
    return dict(parse_assignment(item) for item in raw)


def _path_setting(name: str, value: Any) -> Optional[Path]:
    if value is None or value == "":
        return None
    if not isinstance(value, (str, Path)):
        raise ConfigError(f"'{name}' must be a path string, got {value!r}")
    return Path(value)


def _int_setting(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"'{name}' must be an integer, got {value!r}")
    return value


def load_config_file(path: Union[str, Path]) -> Dict[str, Any]:
    """Read a JSON settings file; '-' in keys is normalised to '_'."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must hold a JSON object")
    return {key.replace("-", "_"): value for key, value in data.items()}


@dataclass
class RunConfig:
    """Everything one byterun invocation needs."""
    source: Optional[str] = None        # program file, '-' for stdin
    inline: Optional[str] = None        # program text from -e
    presets: Dict[int, int] = field(default_factory=dict)
    image: Optional[Path] = None
    output: Optional[Path] = None
    format: str = "hex"
    dump_ast: bool = False
    verbose: int = 0
    quiet: bool = False
    log_file: Optional[Path] = None

    def __post_init__(self):
        if self.format not in OUTPUT_FORMATS:
            raise ConfigError(
                f"Unknown format {self.format!r} (choose from {', '.join(OUTPUT_FORMATS)})")

    @classmethod
    def from_args(cls, args) -> RunConfig:
        """Build from an argparse namespace, layering --config underneath.

        Flags left at None fall back to the file, then to the defaults.
        """
        settings: Dict[str, Any] = {}
        if getattr(args, "config", None):
            settings = load_config_file(args.config)

        def pick(name: str, default: Any = None) -> Any:
            value = getattr(args, name, None)
            if value is None:
                value = settings.get(name, default)
            return value

        presets = _parse_presets(settings.get("set"))
        presets.update(_parse_presets(getattr(args, "set", None)))

        return cls(
            source=getattr(args, "source", None),
            inline=getattr(args, "eval", None),
            presets=presets,
            image=_path_setting("image", pick("image")),
            output=_path_setting("output", pick("output")),
            format=pick("format", "hex"),
            dump_ast=bool(getattr(args, "ast", False)),
            verbose=_int_setting("verbose", pick("verbose", 0)),
            quiet=bool(pick("quiet", False)),
            log_file=_path_setting("log_file", pick("log_file")),
        )


def build_memory(config: RunConfig) -> Memory:
    """Initial memory: the image first, then presets on top."""
    memory = Memory()
    if config.image:
        try:
            data = config.image.read_bytes()
        except OSError as e:
            raise ConfigError(f"Cannot read image {config.image}: {e}") from e
        if len(data) > MEMORY_SIZE:
            raise ConfigError(
                f"Image {config.image} is {len(data)} bytes, memory holds {MEMORY_SIZE}")
        memory.load(data)
    for addr, value in config.presets.items():
        memory[addr] = value
    return memory
