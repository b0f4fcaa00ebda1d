"""
Local self-check: boots the app in-process and probes its endpoints.

    python backend/selfcheck.py

Checks /health, and in development also /debug/env and /debug/pdf (which
launches headless Chromium). Missing configuration is reported but does
not fail the check.
"""
import asyncio
import sys

import httpx

from mailpdf.config import get_settings
from mailpdf.main import create_app

# Simple color output
GREEN = "\033[92m"
RED = "\033[91m"
YELLOW = "\033[93m"
RESET = "\033[0m"


def print_result(name, success, error=None):
    if success:
        print(f"{GREEN}[PASS]{RESET} {name}")
    else:
        print(f"{RED}[FAIL]{RESET} {name}")
        if error:
            print(f"  Error: {error}")


async def check_health(client) -> bool:
    response = await client.get("/health")
    body = response.text.strip()
    ok = response.status_code == 200 and body == "ok"
    print_result("/health", ok, f"status={response.status_code}, body={body!r}")
    return ok


async def check_debug_env(client) -> bool:
    response = await client.get("/debug/env")
    if response.status_code != 200:
        print_result("/debug/env", False, f"status={response.status_code}")
        return False

    missing = response.json().get("missing") or []
    print_result(f"/debug/env (missing reported: {len(missing)})", True)
    return True


async def check_debug_pdf(client) -> bool:
    response = await client.get("/debug/pdf", timeout=180.0)
    content_type = response.headers.get("content-type", "")

    if response.status_code != 200:
        print_result("/debug/pdf", False, f"status={response.status_code}, body={response.text[:300]}")
        return False
    if "application/pdf" not in content_type:
        print_result("/debug/pdf", False, f"unexpected Content-Type: {content_type}")
        return False
    if not response.content:
        print_result("/debug/pdf", False, "empty PDF")
        return False

    print_result(f"/debug/pdf ({len(response.content)} bytes)", True)
    return True


async def main() -> int:
    settings = get_settings()

    missing = settings.missing_config()
    if missing:
        print(f"{YELLOW}[WARN]{RESET} Config missing (non-blocking): {', '.join(missing)}")
    else:
        print_result("Config", True)

    app = create_app(settings)
    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    results = []

    async with httpx.AsyncClient(transport=transport, base_url="http://selfcheck") as client:
        try:
            results.append(await check_health(client))

            if settings.is_development:
                results.append(await check_debug_env(client))
                results.append(await check_debug_pdf(client))
            else:
                print(f"{YELLOW}[SKIP]{RESET} /debug/env and /debug/pdf (ENVIRONMENT != development)")
        except httpx.HTTPError as e:
            print_result("Self-check", False, str(e))
            results.append(False)

    if all(results):
        print(f"\n{GREEN}Self-check passed{RESET}")
        return 0

    print(f"\n{RED}Self-check failed{RESET}")
    return 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
