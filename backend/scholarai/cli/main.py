"""CLI entrypoint for ScholarAI."""

from __future__ import annotations

import json
import os
from contextlib import ExitStack
from pathlib import Path
from typing import List, Optional

import requests
import typer

app = typer.Typer(name="scholarai", help="ScholarAI command-line interface")

DEFAULT_HOST = "http://127.0.0.1:8787"


def _resolve_host(override: Optional[str]) -> str:
    if override:
        return override.rstrip("/")
    env_host = os.environ.get("SCHOLAR_HOST")
    if env_host:
        return env_host.rstrip("/")
    return DEFAULT_HOST


def _request(method: str, path: str, host: Optional[str] = None, **kwargs) -> requests.Response:
    base = _resolve_host(host)
    url = f"{base}/api{path}"
    resp = requests.request(method, url, timeout=120, **kwargs)
    if not resp.ok:
        try:
            detail = resp.json()
        except ValueError:
            detail = resp.text
        typer.echo(f"Request failed ({resp.status_code}): {detail}", err=True)
        raise typer.Exit(code=1)
    return resp


@app.command()
def serve(
    bind: str = typer.Option("127.0.0.1", "--bind", help="Interface to listen on"),
    port: int = typer.Option(8787, "--port", help="Port to listen on"),
) -> None:
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run("scholarai.app:app", host=bind, port=port, log_config=None)


@app.command()
def upload(
    paths: List[Path] = typer.Argument(..., help="Files to upload (max 10)"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Upload documents."""
    with ExitStack() as stack:
        files = [
            ("files", (path.name, stack.enter_context(path.expanduser().open("rb"))))
            for path in paths
        ]
        resp = _request("POST", "/upload", host=host, files=files)
    typer.echo(json.dumps(resp.json(), indent=2))


@app.command()
def docs(
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """List uploaded documents."""
    resp = _request("GET", "/docs", host=host)
    typer.echo(json.dumps(resp.json(), indent=2))


@app.command()
def delete(
    doc_id: str = typer.Argument(..., help="Document identifier"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Delete a document."""
    resp = _request("DELETE", f"/docs/{doc_id}", host=host)
    typer.echo(json.dumps(resp.json(), indent=2))


@app.command()
def ask(
    question: str = typer.Argument(..., help="Question text"),
    doc: Optional[List[str]] = typer.Option(None, "--doc", help="Restrict to these document ids"),
    k: Optional[int] = typer.Option(None, "--k", help="Number of sources to retrieve (server default if omitted)"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Ask a question answered from uploaded documents."""
    payload: dict[str, object] = {"question": question}
    if k is not None:
        payload["k"] = k
    if doc:
        payload["docIds"] = list(doc)
    resp = _request("POST", "/ask", host=host, json=payload)
    body = resp.json()
    typer.echo(body["answer"])
    for citation in body["citations"]:
        typer.echo(f"[{citation['label']}] {citation['name']} (chunk {citation['chunkId']}, score {citation['score']:.3f})")


@app.command()
def summarize(
    doc_id: str = typer.Argument(..., help="Document identifier"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Summarize one document."""
    resp = _request("POST", "/summarize", host=host, json={"docId": doc_id})
    typer.echo(resp.json()["summary"])


if __name__ == "__main__":
    app()
