"""Authentication related commands."""

from __future__ import annotations

import json

from ..core import save_config, get_base_and_token, http_json


def cmd_auth_set(args):
    save_config(args.base_url, args.token)
    return 0


def cmd_auth_info(_args):
    base, token = get_base_and_token()
    data = http_json("POST", f"{base}/auth.info", token, {})
    print(json.dumps(data, ensure_ascii=False, indent=2))
    return 0
