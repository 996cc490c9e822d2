#!/usr/bin/env python
"""
Smoke-test harness for the COS object store against a real bucket.
Usage: python check_store.py <region> <bucket> [prefix]
"""
from __future__ import annotations

import sys

from velero_cos.core.errors import PluginError, classify_error
from velero_cos.plugin import new_object_store


def main():
    if len(sys.argv) < 3:
        print("Usage: python check_store.py <region> <bucket> [prefix]")
        print("\nCredentials are read from:")
        print("  - TENCENT_CLOUD_SECRETID / TENCENT_CLOUD_SECRETKEY")
        print("  - TENCENT_CREDENTIALS_FILE (optional KEY=VALUE file, overrides the above)")
        sys.exit(1)

    region, bucket = sys.argv[1], sys.argv[2]
    prefix = sys.argv[3] if len(sys.argv) > 3 else ""

    print(f"\n{'='*60}")
    print(f"Checking bucket: {bucket} ({region}) prefix={prefix!r}")
    print(f"{'='*60}\n")

    store = new_object_store()
    try:
        store.init({"region": region})
        keys = store.list_objects(bucket, prefix)
    except PluginError as exc:
        print(f"\n[FAIL] {classify_error(exc)}: {exc}")
        sys.exit(1)

    for key in keys:
        print(f"  {key}")
    print(f"\n[OK] {len(keys)} object(s)")


if __name__ == "__main__":
    main()
