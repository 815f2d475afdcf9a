#!/usr/bin/env python3
"""🎯 Recipe: Compare Repair Estimates with Fallback Across Models.

When you need to: Ask the gateway about up to three PDFs and get a usable
answer even when individual models are rate limited or flaky.

Ingredients:
- One to three local PDF files
- `DARWIN_API_KEY` set in the environment

What you'll learn:
- Build a document request with `CompletionRequest.with_documents`
- Handle the three typed errors and degraded results
- Print the configuration audit to see where settings came from

Difficulty: ⭐
Time: ~5 minutes
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

from darwin_orchestrator import (
    CompletionError,
    CompletionRequest,
    DocumentPart,
    UpstreamUnavailableError,
    create_orchestrator,
    resolve_config,
)

SYSTEM = "You are Darwin, an assistant for property-claim adjusters."


async def main_async(paths: list[Path], prompt: str) -> None:
    config = resolve_config()
    print("=== Configuration ===")
    print(config.audit())

    docs = [DocumentPart(p.read_bytes(), name=p.name) for p in paths]
    request = CompletionRequest.with_documents(SYSTEM, prompt, docs, label="ESTIMATE")

    async with create_orchestrator(config.to_frozen()) as orchestrator:
        try:
            result = await orchestrator.complete(request, deadline=300)
        except UpstreamUnavailableError as e:
            print(f"\n❌ {e}")
            for model, failure in e.trail:
                print(f"  - {model}: {failure.value}")
            return
        except CompletionError as e:
            print(f"\n❌ {e.to_payload()['error']}")
            return

    if result.is_degraded:
        print(f"\n⚠️  Degraded ({result.degraded.reason})")
    print(f"\n📋 Answer from {result.model} after {result.attempts} call(s):\n")
    print(result.text)


def main() -> None:
    parser = argparse.ArgumentParser(description="Compare repair estimates")
    parser.add_argument("paths", type=Path, nargs="+", help="PDF files (max 3 are sent)")
    parser.add_argument(
        "--prompt",
        default="Compare these estimates line by line and list the discrepancies.",
        help="Question to ask about the documents",
    )
    parser.add_argument("--verbose", action="store_true", help="Show retry logging")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)
    asyncio.run(main_async(args.paths, args.prompt))


if __name__ == "__main__":
    main()
