# loader.py
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Sequence

from gherkin.errors import ParserError
from gherkin.parser import Parser
from gherkin.token_scanner import TokenScanner

from .model import Scenario, Spec, StepRef


DEFAULT_EXTENSIONS = (".feature",)

# directories never worth descending into (build output, vendored deps)
SKIP_DIRS = {"target", "build", "node_modules", "__pycache__"}


@dataclass
class DiscoveryError(Exception):
    """Feature discovery failed before anything ran."""
    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.message}: {self.path}"


# ----------------------------------------------------------------------
# Gherkin document -> Spec
# ----------------------------------------------------------------------

def _tag_names(node: dict) -> frozenset[str]:
    return frozenset(t["name"].lstrip("@") for t in node.get("tags", []) or [])


def _steps(node: dict) -> tuple[StepRef, ...]:
    return tuple(
        StepRef(
            keyword=s.get("keyword", "").strip(),
            text=s.get("text", ""),
            line=s["location"]["line"],
        )
        for s in node.get("steps", []) or []
    )


def _expand_scenario(node: dict, path: str, inherited: frozenset[str]) -> List[Scenario]:
    """
    Plain scenario -> one Scenario.
    Scenario Outline -> one Scenario per examples row, identified by the row line.
    """
    tags = inherited | _tag_names(node)
    steps = _steps(node)
    name = node.get("name", "")
    examples = node.get("examples") or []

    if not examples:
        return [Scenario(name=name, spec_path=path, line=node["location"]["line"], tags=tags, steps=steps)]

    out: List[Scenario] = []
    n = 0
    for block in examples:
        block_tags = tags | _tag_names(block)
        for row in block.get("tableBody", []) or []:
            n += 1
            out.append(
                Scenario(
                    name=f"{name} [{n}]",
                    spec_path=path,
                    line=row["location"]["line"],
                    tags=block_tags,
                    steps=steps,
                )
            )
    return out


def _document_to_spec(document: dict, path: str) -> Spec | None:
    feature = document.get("feature")
    if not feature:
        return None

    feature_tags = _tag_names(feature)
    scenarios: List[Scenario] = []

    for child in feature.get("children", []) or []:
        if "scenario" in child:
            scenarios.extend(_expand_scenario(child["scenario"], path, feature_tags))
        elif "rule" in child:
            rule = child["rule"]
            rule_tags = feature_tags | _tag_names(rule)
            for rule_child in rule.get("children", []) or []:
                if "scenario" in rule_child:
                    scenarios.extend(_expand_scenario(rule_child["scenario"], path, rule_tags))
        # backgrounds are part of the file, the collaborator re-reads them

    return Spec(path=path, name=feature.get("name", ""), scenarios=tuple(scenarios), tags=feature_tags)


# ----------------------------------------------------------------------
# Loader
# ----------------------------------------------------------------------

class SpecLoader:
    """
    Discovers feature files under a root directory.

    Usage:
        loader = SpecLoader()
        for spec in loader.load("src/test/java"):
            ...
    """

    def __init__(self, extensions: Sequence[str] = DEFAULT_EXTENSIONS):
        self.extensions = tuple(e if e.startswith(".") else f".{e}" for e in extensions)

    def load(self, root: str | Path) -> Iterator[Spec]:
        """
        Validate `root` now, return a lazy generator of Spec.

        Raises DiscoveryError immediately if root is missing or unreadable;
        parse errors surface while iterating.
        """
        root_p = Path(root).expanduser()
        if not root_p.exists():
            raise DiscoveryError(str(root_p), "Feature directory not found")
        if not os.access(root_p, os.R_OK):
            raise DiscoveryError(str(root_p), "Feature directory not readable")
        if root_p.is_file():
            if root_p.suffix not in self.extensions:
                raise DiscoveryError(str(root_p), "Not a feature file")
            return self._single(root_p)
        if not root_p.is_dir():
            raise DiscoveryError(str(root_p), "Not a directory")
        return self._walk(root_p)

    def load_file(self, path: str | Path) -> Spec | None:
        p = Path(path)
        try:
            text = p.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise DiscoveryError(str(p), f"Could not read feature file ({e})") from e

        try:
            document = Parser().parse(TokenScanner(text))
        except ParserError as e:
            raise DiscoveryError(str(p), f"Invalid feature file ({e})") from e

        return _document_to_spec(document, str(p))

    def find_files(self, root: Path) -> Iterator[Path]:
        """Sorted, deterministic walk; hidden and build dirs pruned."""
        for dirpath, dirnames, filenames in os.walk(root, onerror=self._walk_error):
            dirnames[:] = sorted(d for d in dirnames if not d.startswith(".") and d not in SKIP_DIRS)
            for name in sorted(filenames):
                if Path(name).suffix in self.extensions:
                    yield Path(dirpath) / name

    def _single(self, path: Path) -> Iterator[Spec]:
        spec = self.load_file(path)
        if spec is not None:
            yield spec

    def _walk(self, root: Path) -> Iterator[Spec]:
        seen: set[Path] = set()
        for path in self.find_files(root):
            resolved = path.resolve()
            if resolved in seen:
                # symlinked duplicate of a file already loaded
                continue
            seen.add(resolved)
            spec = self.load_file(path)
            if spec is not None:
                yield spec

    @staticmethod
    def _walk_error(err: OSError) -> None:
        raise DiscoveryError(str(err.filename), f"Could not read directory ({err.strerror})")


def load_specs(root: str | Path, extensions: Sequence[str] = DEFAULT_EXTENSIONS) -> Iterator[Spec]:
    """Convenience: SpecLoader(extensions).load(root)."""
    return SpecLoader(extensions).load(root)
