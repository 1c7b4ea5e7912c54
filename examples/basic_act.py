#!/usr/bin/env python3
"""
Basic Act Example
=================

Opens a page, flattens it, and performs one action described in plain
English with the heuristic brain (no API key needed).

Usage:
    python examples/basic_act.py
"""

import logging

from lookout import LookoutOrchestrator


def main():
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    print("=" * 60)
    print("🔭 Lookout - Basic Act Example")
    print("=" * 60)

    with LookoutOrchestrator(brain_type="heuristic", headless=False, record=True) as agent:
        agent.goto("https://example.com")

        print("\nWhat the model sees:\n")
        print(agent.flatten().text)

        result = agent.act("click the More information link", use_vision=False)
        print(f"\nSuccess: {result.success}")
        print(result.message)
        if agent.last_report_path:
            print(f"Report: {agent.last_report_path}")


if __name__ == "__main__":
    main()
