"""Final run report printed by the batch commands."""

from __future__ import annotations

import sys
from typing import List

from ..core import ItemStatus, OperationResult


def print_report(results: List[OperationResult], verb: str, *, show_details: bool = False) -> int:
    """Print counts and failures; return the number of failed items."""
    total = len(results)
    ok = sum(1 for r in results if r.status is ItemStatus.SUCCESS)
    errors = [r for r in results if r.status is ItemStatus.ERROR]
    pending = total - ok - len(errors)

    print(f"{verb} {ok}/{total} notes")
    if pending:
        print(f"{pending} still pending (may still finish in the background)")
    if errors:
        print(f"Errors ({len(errors)}):", file=sys.stderr)
        for r in errors[:10]:
            print(f"  {r.item_id}: {r.error}", file=sys.stderr)
            if show_details and r.error_detail and r.error_detail != r.error:
                print(f"    {r.error_detail}", file=sys.stderr)
        if len(errors) > 10:
            print(f"  ... and {len(errors)-10} more", file=sys.stderr)
    return len(errors)
