"""
Tagless final: a program written against an algebra, run with two interpreters.

The algebra is a Protocol. The program asks the Context for it, so the same
code runs against the production interpreter and against an in-memory one.

Run: python examples/tagless_final.py
"""
from __future__ import annotations
import json
import os
import tempfile
from dataclasses import dataclass, field
from typing import Dict, Protocol

from fpkit import IO, Context, Runtime, Option, from_nullable, do


@dataclass(frozen=True)
class Note:
    slug: str
    body: str


class NoteStore(Protocol):
    def load(self, slug: str) -> IO[Option[Note]]: ...
    def save(self, note: Note) -> IO[None]: ...


class FileNoteStore:
    """Production interpreter: one JSON file per note."""

    def __init__(self, root: str):
        self.root = root

    def _path(self, slug: str) -> str:
        return os.path.join(self.root, f"{slug}.json")

    def load(self, slug: str) -> IO[Option[Note]]:
        def read():
            if not os.path.exists(self._path(slug)):
                return None
            with open(self._path(slug)) as fh:
                return Note(**json.load(fh))
        return IO.blocking(read).map(from_nullable)

    def save(self, note: Note) -> IO[None]:
        def write():
            with open(self._path(note.slug), "w") as fh:
                json.dump({"slug": note.slug, "body": note.body}, fh)
        return IO.blocking(write)


@dataclass
class InMemoryNoteStore:
    notes: Dict[str, Note] = field(default_factory=dict)

    def load(self, slug: str) -> IO[Option[Note]]:
        return IO.delay(lambda: from_nullable(self.notes.get(slug)))

    def save(self, note: Note) -> IO[None]:
        return IO.delay(lambda: self.notes.__setitem__(note.slug, note))


@do(IO)
def append_line(slug: str, line: str):
    store = yield IO.service(NoteStore)
    existing = yield store.load(slug)
    note = existing.fold(lambda: Note(slug, line), lambda n: Note(slug, f"{n.body}\n{line}"))
    yield store.save(note)
    return note


def run_with(store, runtime: Runtime):
    program = append_line("groceries", "oat milk") >> append_line("groceries", "lentils")
    note = runtime.run_sync(program.provide_service(NoteStore, store))
    print(type(store).__name__, note.body.splitlines())


def main():
    runtime = Runtime(Context())
    memory = InMemoryNoteStore()
    run_with(memory, runtime)
    print(sorted(memory.notes))
    with tempfile.TemporaryDirectory() as root:
        run_with(FileNoteStore(root), runtime)
        print(sorted(os.listdir(root)))


if __name__ == "__main__":
    main()
