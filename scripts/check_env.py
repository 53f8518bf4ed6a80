#!/usr/bin/env python3
"""
Check that the configured provider keys are valid and working.

Loads .env (and .env.local) through src.config, then sends one minimal
request per configured provider using that provider's primary model. Run this
before a session to avoid "401 Unauthorized" surprises mid-assessment.

Usage:
    python scripts/check_env.py
    # or from project root:
    python -m scripts.check_env
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

# Project root = parent of scripts/
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import httpx  # noqa: E402

from src.config import get_settings, load_provider_keys  # noqa: E402
from src.credentials import ProviderCredential, configured_credentials  # noqa: E402
from src.llm_errors import DispatchError, ModelUnavailableError, PermanentDispatchError  # noqa: E402
from src.model_routing import select_model  # noqa: E402
from src.models import GenerationRequest  # noqa: E402
from src.providers import get_adapter  # noqa: E402

PING = GenerationRequest(
    prompt='Reply with {"ok": true}',
    system_instruction="You are a health check.",
    output_schema={"type": "OBJECT", "properties": {"ok": {"type": "BOOLEAN"}}},
    task="check_env",
)


async def check_credential(client: httpx.AsyncClient, cred: ProviderCredential) -> tuple[bool, str]:
    """One request against the provider's primary model."""
    adapter = get_adapter(cred.provider, get_settings().llm)
    model = select_model(cred.provider, 0)
    try:
        await adapter.dispatch(client, cred.api_key, model, PING)
    except ModelUnavailableError as e:
        # Key was accepted; only the model route is missing
        return True, f"OK (key valid; {model} unavailable: {e.message[:120]})"
    except PermanentDispatchError as e:
        return False, f"Rejected (HTTP {e.status}): {e.message[:200]}"
    except DispatchError as e:
        return False, f"Temporarily unavailable: {e.message[:200]}"
    return True, f"OK ({model})"


async def main() -> int:
    credentials = configured_credentials(load_provider_keys())
    if not credentials:
        print("[FAIL] No API key configured. Set API_KEY or a provider-specific key in .env")
        return 1

    failed = 0
    async with httpx.AsyncClient(timeout=15.0) as client:
        for cred in credentials:
            ok, msg = await check_credential(client, cred)
            status = "[OK]  " if ok else "[FAIL]"
            if not ok:
                failed += 1
            print(f"  {status} {cred.provider.value} ({cred.source.upper()})")
            print(f"         Key: {cred.key_suffix}")
            print(f"         → {msg}")
            print()

    if failed:
        print("Fix the failing keys above, then run: python scripts/check_env.py")
        return 1
    print(f"All configured keys are valid. Active provider: {credentials[0].provider.value}")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
