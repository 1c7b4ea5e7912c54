#!/usr/bin/env python3
"""
Schema Extraction Example
=========================

Pulls structured data out of a page with a pydantic model as the schema.
Works best with a cloud brain: set OPENAI_API_KEY or ANTHROPIC_API_KEY
(a .env file is fine when running through the CLI).

Usage:
    python examples/extract_with_schema.py
"""

from typing import List

from pydantic import BaseModel, Field

from lookout import LookoutOrchestrator


class Stories(BaseModel):
    titles: List[str] = Field(description="Titles of the stories on the front page")


def main():
    with LookoutOrchestrator(headless=True) as agent:
        agent.goto("https://news.ycombinator.com")
        result = agent.extract("the titles of the top stories", Stories)

        print(f"Success: {result.success} ({result.message})")
        if result.model:
            for title in result.model.titles[:10]:
                print(f" - {title}")


if __name__ == "__main__":
    main()
