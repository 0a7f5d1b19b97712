import argparse
from pathlib import Path
from types import NoneType, UnionType
from typing import Annotated, Any, Sequence, TypeGuard, Union, cast, get_args, get_origin

from msgspec import ValidationError, convert
from msgspec.structs import FieldInfo, fields
from typing_extensions import Doc

from muxserve.config.app_config import AppConfig, ConfigBase
from muxserve.errors import AppConfiguringError
from muxserve.interface import MISSING, Record, StrDict, is_provided


def format_nested_dict(flat_dict: StrDict) -> StrDict:
    """
    Convert a flat dictionary with dot notation keys to a nested dictionary.

    Example:
        {"server.address": "/ip4/0.0.0.0/tcp/80"} -> {"server": {"address": "/ip4/0.0.0.0/tcp/80"}}
    """
    result: StrDict = {}

    for key, value in flat_dict.items():
        if "." in key:
            parts = key.split(".")
            current = result
            for part in parts[:-1]:
                if part not in current:
                    current[part] = {}
                current = current[part]
            current[parts[-1]] = value
        else:
            result[key] = value
    return result


def deep_update(original: StrDict, update_data: StrDict) -> StrDict:
    """
    Recursively update a nested dictionary without overwriting entire nested structures.
    """
    for key, value in update_data.items():
        if (
            key in original
            and isinstance(original[key], dict)
            and isinstance(value, dict)
        ):
            deep_update(original[key], cast(Any, value))
        else:
            original[key] = value
    return original


def is_config_type(ftype: Any) -> TypeGuard[type[ConfigBase]]:
    return isinstance(ftype, type) and issubclass(ftype, ConfigBase)


class ConfigField(Record):
    field_type: type
    doc: str


def parse_field_type(field: FieldInfo) -> ConfigField:
    ftype = field.type
    doc: str = ""

    if get_origin(ftype) is Annotated:
        ftype, *metas = get_args(ftype)
        for m in metas:
            if isinstance(m, Doc):
                doc = m.documentation
                break

    if get_origin(ftype) in (Union, UnionType):
        unions = get_args(ftype)
        ftype = next(filter(lambda x: x is not NoneType, unions))

    return ConfigField(cast(type, ftype), doc)


def generate_parser_actions(
    config_type: type[ConfigBase], prefix: str = ""
) -> list[dict[str, Any]]:
    actions: list[dict[str, Any]] = []

    for field_info in fields(config_type):
        full_field_name = (
            f"{prefix}.{field_info.encode_name}" if prefix else field_info.encode_name
        )
        arg_name = f"--{full_field_name}"

        config_field = parse_field_type(field_info)
        field_type = config_field.field_type
        if is_config_type(field_type):
            actions.extend(generate_parser_actions(field_type, full_field_name))
            continue

        action: dict[str, Any] = {
            "name": arg_name,
            "type": "bool" if field_type is bool else field_type,
            "default": MISSING,
            "help": config_field.doc,
        }
        if field_type is bool:
            action["action"] = "store_true"
        actions.append(action)
    return actions


def build_parser(config_type: type[ConfigBase]) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="muxserve configuration", allow_abbrev=False
    )

    for action in generate_parser_actions(config_type):
        if action["type"] == "bool":
            parser.add_argument(
                action["name"],
                action=action["action"],
                default=action["default"],
                help=action["help"],
            )
        else:
            parser.add_argument(
                action["name"],
                type=action["type"],
                default=action["default"],
                help=action["help"],
            )
    return parser


def config_from_cli(
    config_type: type[AppConfig] = AppConfig, argv: Sequence[str] | None = None
) -> StrDict | None:
    parser = build_parser(config_type)
    known_args = parser.parse_known_args(argv)[0]

    cli_args: StrDict = {k: v for k, v in vars(known_args).items() if is_provided(v)}
    if not cli_args:
        return None

    return format_nested_dict(cli_args)


def config_from_file[T: AppConfig](
    config_file: Path | str | None,
    *,
    config_type: type[T] = AppConfig,
    argv: Sequence[str] | None = None,
) -> T:
    """
    Read config from a toml file, then overlay command line flags.

    Flags mirror the record fields with dot notation, e.g. `--server.address`.
    """
    if config_file is None:
        config_dict: StrDict = {}
    else:
        file_path = Path(config_file)
        if not file_path.exists():
            raise AppConfiguringError(f"path {file_path} not exist")

        file_ext = file_path.suffix[1:]
        if file_ext != "toml":
            raise AppConfiguringError(f"Not supported file type {file_ext}")
        config_dict = config_type.from_toml(file_path)

    cli_config = config_from_cli(config_type, argv)
    if cli_config:
        deep_update(config_dict, cli_config)

    try:
        return convert(config_dict, config_type)
    except ValidationError as exc:
        raise AppConfiguringError(f"invalid config: {exc}") from exc
