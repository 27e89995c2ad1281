"""
Basic Usage Example
Run the pipeline over two pages from Python instead of the CLI
"""

import asyncio
import logging
import os

from synth_scraper.app import run
from synth_scraper.config import load_config
from synth_scraper.core.models import Target

# Set your API key (or put it in .env)
API_KEY = os.getenv('OPENAI_API_KEY')  # or GEMINI_API_KEY, ANTHROPIC_API_KEY


def show_progress(completed, total):
    print(f"   [{completed}/{total}]", end='\r')


async def main():
    config = load_config(
        api_key=API_KEY,
        model_name='gpt-4o',
        capture_mode='static',  # no browser needed
        targets=[
            Target(url='https://blog.python.org/', category='blog articles'),
            Target(url='https://books.toscrape.com/', category='product data'),
        ]
    )

    # First run synthesizes a program per URL, the second run reuses them
    for label in ('first run', 'second run'):
        report = await run(config, on_progress=show_progress)
        print(f"\n✅ {label}: {report.summary()}")

        for outcome in report.outcomes:
            source = 'cached' if outcome.from_cache else 'synthesized'
            print(f"  {outcome.target.url}: {outcome.status.value} ({source})")
            if outcome.output_path:
                print(f"    📁 {outcome.output_path}")


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
