"""``bulknote config``: show and tune the batch engine settings."""

from __future__ import annotations

from ..core import CONFIG_PATH, format_rows, load_settings, save_settings, settings_as_dict


def cmd_config_show(_args):
    settings = settings_as_dict(load_settings())
    format_rows([{"setting": k, "value": v} for k, v in settings.items()], ["setting", "value"])
    return 0


def cmd_config_set(args):
    changes = {
        "max_batch_size": args.max_batch_size,
        "max_retries": args.max_retries,
        "base_delay_ms": args.base_delay_ms,
        "max_delay_ms": args.max_delay_ms,
        "save_timeout": args.save_timeout,
    }
    if all(v is None for v in changes.values()):
        print("Nothing to change. See: bulknote config set --help")
        return 1
    settings = save_settings(**changes)
    print(f"Saved batch settings to {CONFIG_PATH}")
    for key, value in settings_as_dict(settings).items():
        print(f"  {key} = {value}")
    return 0
