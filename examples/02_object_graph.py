#!/usr/bin/env python3
"""Example: Object graph over git branches

Models the branches of the current git repository as a cached
collection. Each branch is listed as a ``Label: value`` record through
``git for-each-ref``, so the whole listing is fetched once and later
lookups are answered from the cache.

Usage:
    python examples/02_object_graph.py

Requirements:
    pip install cmdgraph
    git on PATH, run from inside a repository
"""
from __future__ import annotations

from cmdgraph import Collection, Entity, Root, Tool, derived

BRANCH_FORMAT = "Name: %(refname:short)%0aHead: %(objectname:short)%0aSubject: %(subject)%0a"


class Branch(Entity):
    @derived
    def commit_count(self) -> int:
        (lines,) = self.run_tool("rev-list", "--count", self, leave_stderr=True)
        return int(lines[0])


class BranchCollection(Collection[Branch]):
    item_class = Branch

    def listing_command(self, names):
        refs = [f"refs/heads/{name}" for name in names] or ["refs/heads"]
        return ["for-each-ref", f"--format={BRANCH_FORMAT}", *refs]


class Repository(Root):
    def __init__(self, tool: Tool) -> None:
        super().__init__(tool)
        self.branches = BranchCollection(self)


def main() -> None:
    repo = Repository(Tool("git"))

    # Step 1: One listing for every branch
    for branch in repo.branches.get_all():
        print(f"{branch.name:20} {branch.field('Head')}  {branch.field('Subject')}")

    # Step 2: Lookups are answered from the cache
    names = [branch.name for branch in repo.branches.get_all()]
    first = repo.branches.get_one(names[0]) if names else None

    # Step 3: Derived values cost one extra command, once
    if first is not None:
        print(f"{first.name} has {first.commit_count} commits")


if __name__ == "__main__":
    main()
