# -------------------------
# Author: Jeevan Reji (modified)
# Date: 2026-10-19
# -------------------------
"""
Local stand-in for the search service: a liveness page, /search over an
in-memory paragraph corpus, and Prometheus request counters.

Corpus file (TARGET_CORPUS) is JSON lines:
{"book_title": "...", "chapter_title": "...", "searchable_text": "..."}
"""
from fastapi import FastAPI, Query, Request, Response
from fastapi.responses import HTMLResponse
from prometheus_client import CollectorRegistry, Counter, CONTENT_TYPE_LATEST, generate_latest
import json, os
from typing import Dict, List

MAX_RESULTS = 20

SEARCHABLE_BOOKS = {
    "wok": "The Way of Kings",
    "aol": "The Alloy of Law",
    "sos": "Shadows of Self",
    "bom": "The Bands of Mourning",
    "sh": "Secret History",
    "wb": "Warbreaker",
    "tes": "The Emperor's Soul",
    "thoe": "The Hope of Elantris",
}

SAMPLE_CORPUS = [
    {"book_title": "The Alloy of Law", "chapter_title": "Prologue",
     "searchable_text": "Wax crept along the fence, boots scraping the dry ground."},
    {"book_title": "The Alloy of Law", "chapter_title": "Chapter 1",
     "searchable_text": "Hello, Wayne said, tipping his hat to the constable."},
    {"book_title": "Shadows of Self", "chapter_title": "Chapter 3",
     "searchable_text": "The city was quiet, the mists heavy over the canals."},
    {"book_title": "The Bands of Mourning", "chapter_title": "Chapter 7",
     "searchable_text": "Steris had prepared a list of every possible disaster."},
    {"book_title": "Secret History", "chapter_title": "Part One",
     "searchable_text": "Kelsier awoke in the mists, and the world was gray."},
]


def load_corpus(path: str) -> List[Dict]:
    docs = []
    with open(path, "r", encoding="utf-8") as f:
        for ln in f:
            ln = ln.strip()
            if ln:
                docs.append(json.loads(ln))
    return docs


def sanitize_term(raw: str) -> str:
    """Trim and keep only ASCII letters, digits and spaces."""
    return "".join(c for c in raw.strip() if (c.isascii() and c.isalnum()) or c == " ")


def search_corpus(corpus: List[Dict], term: str, books: List[str]):
    tokens = term.lower().split()
    hits = []
    for doc in corpus:
        if books and doc["book_title"] not in books:
            continue
        text = doc["searchable_text"].lower()
        if tokens and all(t in text for t in tokens):
            hits.append(doc)
    return len(hits), hits[:MAX_RESULTS]


def create_app(corpus: List[Dict] = None) -> FastAPI:
    app = FastAPI()
    if corpus is None:
        path = os.environ.get("TARGET_CORPUS")
        corpus = load_corpus(path) if path else SAMPLE_CORPUS
    app.state.corpus = corpus
    # per-app registry so several apps (tests) never share counters
    app.state.registry = CollectorRegistry()
    app.state.http_requests = Counter(
        "csearch_http_requests",
        "Number of HTTP requests received",
        ["method", "path"],
        registry=app.state.registry,
    )

    @app.middleware("http")
    async def count_requests(request: Request, call_next):
        app.state.http_requests.labels(request.method, request.url.path).inc()
        return await call_next(request)

    @app.get("/", response_class=HTMLResponse)
    async def index():
        return "<html><body><form action=\"/search\"><input name=\"q\"></form></body></html>"

    @app.get("/health")
    async def health():
        return {"status": "ok", "paragraphs": len(app.state.corpus)}

    @app.get("/search")
    async def search(q: str = "", book: List[str] = Query(default=[])):
        term = sanitize_term(q)
        titles = [SEARCHABLE_BOOKS[b] for b in book if b in SEARCHABLE_BOOKS]
        print(f"[Target] Searched for {term!r} in {titles}")
        total, results = search_corpus(app.state.corpus, term, titles)
        return {
            "search_term": term,
            "books": titles,
            "total_matches": total,
            "results": [
                {"book": d["book_title"], "chapter": d["chapter_title"], "text": d["searchable_text"]}
                for d in results
            ],
        }

    @app.get("/metrics")
    async def metrics():
        return Response(generate_latest(app.state.registry), media_type=CONTENT_TYPE_LATEST)

    return app
