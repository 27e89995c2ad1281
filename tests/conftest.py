"""Shared fixtures and in-test fakes for the pipeline collaborators.

Mocking strategy:
- Page capture is replaced by ``FakeCapture`` (serves canned HTML per URL);
  the real ``clean_markup`` still runs on it.
- The code-generation provider is replaced by ``FakeClient`` (scripted replies
  or exceptions, counts calls).
- Sleeps are replaced by ``RecordingSleep`` so backoff schedules are asserted
  without waiting.
- The sandbox is real: generated programs run in a subprocess with the
  current interpreter against temporary directories.
"""

from __future__ import annotations

import textwrap

import pytest

from synth_scraper.core.artifacts import ArtifactPaths
from synth_scraper.core.coordinator import ArtifactSignal, ExecutionCoordinator
from synth_scraper.core.page_capture import PageCapture
from synth_scraper.core.pipeline import PipelineOrchestrator
from synth_scraper.core.program_cache import ProgramCache
from synth_scraper.core.relevance import RelevanceFilter
from synth_scraper.core.result_sink import ResultSink
from synth_scraper.core.sandbox import ProgramExecutor
from synth_scraper.core.store import DocumentStore
from synth_scraper.core.synthesizer import ProgramSynthesizer


# ---------------------------------------------------------------------------
# Canned programs and pages
# ---------------------------------------------------------------------------

VALID_PROGRAM = textwrap.dedent("""\
    import json
    import os
    from bs4 import BeautifulSoup

    with open(os.environ["SYNTH_SCRAPER_INPUT"], encoding="utf-8") as f:
        soup = BeautifulSoup(f.read(), "html.parser")

    posts = []
    for article in soup.find_all("article"):
        link = article.find("a")
        summary = article.find("p")
        posts.append({
            "title": article.find("h2").get_text(strip=True),
            "url": link["href"] if link else None,
            "summary": summary.get_text(strip=True) if summary else None,
        })

    with open(os.environ["SYNTH_SCRAPER_OUTPUT"], "w", encoding="utf-8") as f:
        json.dump({"blogPosts": posts}, f)
""")

SILENT_PROGRAM = textwrap.dedent("""\
    from bs4 import BeautifulSoup
    print("parsed nothing")
""")

CRASHING_PROGRAM = textwrap.dedent("""\
    from bs4 import BeautifulSoup
    raise RuntimeError("selector not found")
""")

BLOG_HTML = """\
<html>
<head><title>Site blog</title><script>var tracking = 1;</script></head>
<body>
  <main>
    <article>
      <h2>X</h2>
      <a href="https://site.example/blog/x">Read more</a>
      <p>A short summary of the blog post.</p>
    </article>
  </main>
</body>
</html>
"""

UNRELATED_HTML = """\
<html>
<body>
  <main>
    <h1>Welcome</h1>
    <p>Our team loves hiking in the mountains.</p>
  </main>
</body>
</html>
"""


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class RecordingSleep:
    """Awaitable sleep that only records the requested delays"""

    def __init__(self):
        self.calls = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)


class FakeClient:
    """Code-generation client returning scripted replies (exceptions are raised)"""

    def __init__(self, responses=None, default=VALID_PROGRAM):
        self.responses = list(responses or [])
        self.default = default
        self.calls = 0
        self.messages = []

    async def generate(self, messages):
        self.calls += 1
        self.messages.append(messages)
        item = self.responses.pop(0) if self.responses else self.default
        if isinstance(item, BaseException):
            raise item
        return item


class FakeCapture(PageCapture):
    """Serves canned HTML per URL; an exception value is raised instead"""

    def __init__(self, pages, snippet_max_chars: int = 3000):
        super().__init__(snippet_max_chars=snippet_max_chars)
        self.pages = pages
        self.captured = []
        self.opened = False
        self.closed = False

    async def open(self):
        self.opened = True

    async def close(self):
        self.closed = True

    async def fetch_html(self, url):
        self.captured.append(url)
        page = self.pages[url]
        if isinstance(page, BaseException):
            raise page
        return page


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def artifacts(tmp_path):
    paths = ArtifactPaths(str(tmp_path / "work"))
    paths.ensure()
    return paths


@pytest.fixture
def store(tmp_path):
    document_store = DocumentStore(str(tmp_path / "store"))
    yield document_store
    document_store.close()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def make_pipeline(artifacts, store, sleep):
    """Build an orchestrator around fakes; returns (orchestrator, client, capture)"""

    def _make(pages, responses=None, default=VALID_PROGRAM, poll_attempts=2, on_progress=None,
              force_regenerate=False):
        client = FakeClient(responses, default=default)
        capture = FakeCapture(pages)
        synthesizer = ProgramSynthesizer(client, sleep=sleep)
        executor = ProgramExecutor(
            input_path=artifacts.markup_path,
            output_path=artifacts.output_path,
            timeout=30,
            working_dir=artifacts.generated_dir
        )
        signal = ArtifactSignal(artifacts.output_path, attempts=poll_attempts, interval=0)
        orchestrator = PipelineOrchestrator(
            capture=capture,
            relevance=RelevanceFilter(),
            cache=ProgramCache(store, artifacts),
            synthesizer=synthesizer,
            coordinator=ExecutionCoordinator(executor, signal),
            sink=ResultSink(store, artifacts.data_dir),
            artifacts=artifacts,
            force_regenerate=force_regenerate,
            on_progress=on_progress
        )
        return orchestrator, client, capture

    return _make
