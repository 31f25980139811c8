"""Generation pipeline: schema -> generated blocks -> merged target file."""

import logging
import os
import tempfile
from dataclasses import dataclass
from functools import cached_property
from pathlib import Path

from . import rust
from .classifier import PacketSets, classify
from .merge import INDENT, Block, Region, merge
from .parser import load_dir
from .resolver import TypeResolver
from .types import Schema

TARGET_FILE = Path("src/network/packet_handler.rs")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeneratorConfig:
    """Options for one generator run."""

    schema_dir: Path = Path(".")
    project_dir: Path = Path("..")
    target: Path = TARGET_FILE
    indent: str = INDENT
    strict: bool = False

    @property
    def target_path(self) -> Path:
        return self.project_dir / self.target


@dataclass
class Pipeline:
    """Threads one schema through resolution, classification, emission and merging.

    Each stage is computed once and kept on the instance; nothing is shared
    between pipelines.
    """

    schema: Schema
    indent: str = INDENT
    strict: bool = False

    @classmethod
    def from_dir(cls, schema_dir: str | Path, **kwargs) -> "Pipeline":
        return cls(load_dir(schema_dir), **kwargs)

    @cached_property
    def resolver(self) -> TypeResolver:
        return TypeResolver(self.schema.mappings)

    @cached_property
    def packets(self) -> PacketSets:
        logger.info("Extracting sync and async packets...")
        return classify(self.schema)

    @cached_property
    def blocks(self) -> dict[Region, Block]:
        logger.info("Generating packet enums, handlers, serializers and deserializers...")
        return rust.render(self.schema, self.resolver, self.packets)

    def apply(self, source: str) -> str:
        """Return `source` with every marker region regenerated."""
        blocks = self.blocks
        logger.info("Inserting generated code...")
        return merge(source, blocks, indent=self.indent, strict=self.strict)

    def run(self, target: str | Path) -> bool:
        """Regenerate `target` in place. Returns False when it was already current."""
        target = Path(target)
        source = target.read_text(encoding="utf-8")
        output = self.apply(source)

        if output == source:
            logger.info("%s is up to date", target)
            return False

        logger.info("Writing %s...", target)
        write_atomic(target, output)
        return True


def write_atomic(path: Path, text: str) -> None:
    """Replace `path` with `text` in one rename, so readers never see a partial file."""
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(text)
        if path.exists():
            os.chmod(tmp, path.stat().st_mode & 0o777)
        os.replace(tmp, path)
    except BaseException:
        os.unlink(tmp)
        raise


def generate(config: GeneratorConfig) -> bool:
    """Load the schema from `config.schema_dir` and regenerate the target file."""
    pipeline = Pipeline.from_dir(config.schema_dir, indent=config.indent, strict=config.strict)
    changed = pipeline.run(config.target_path)
    logger.info("Done!")
    return changed
