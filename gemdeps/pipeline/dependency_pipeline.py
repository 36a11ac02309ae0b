"""End-to-end gem dependency detection pipeline.

For each selected gem version:
1. Skip if a record already exists (unless forced)
2. Fetch the gem and pull out README / extconf.rb
3. Extract hints from both sources
4. Match hints to system package categories
5. Generate and persist the dependency record
"""

from pathlib import Path
from typing import List, Optional, Sequence, Set

from loguru import logger
from pydantic import BaseModel

from gemdeps.extraction import ExtconfHintExtractor, ReadmeHintExtractor
from gemdeps.ingestion import GemFetcher, RawArtifact
from gemdeps.normalization import DependencyMatcher
from gemdeps.storage import PackageIdentity, RecordGenerator, RecordStore
from gemdeps.utils.config import Config

PRERELEASE_MARKERS = ("rc", "beta", "alpha")


class VersionResult(BaseModel):
    """Outcome of processing one gem version."""

    gem: str
    version: str
    success: bool
    skipped: bool = False
    dependencies: List[str] = []
    error: Optional[str] = None


class BatchResult(BaseModel):
    """Success/failure counts for a list run."""

    success: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.success + self.failed


class DependencyPipeline:
    """Detect and persist system dependencies for gems.

    Example:
        >>> pipeline = DependencyPipeline(config)
        >>> ok = pipeline.process_gem("nokogiri")
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        *,
        fetcher: Optional[GemFetcher] = None,
        matcher: Optional[DependencyMatcher] = None,
        store: Optional[RecordStore] = None,
    ) -> None:
        self.config = config or Config()
        self.fetcher = fetcher or GemFetcher(self.config.fetcher)
        self.readme_extractor = ReadmeHintExtractor()
        self.extconf_extractor = ExtconfHintExtractor()
        self.matcher = matcher or DependencyMatcher(self.config.matcher)
        self.generator = RecordGenerator(self.config.output.generator)
        self.store = store or RecordStore(
            self.config.output.output_dir, dry_run=self.config.pipeline.dry_run
        )

    def select_versions(self, gem_name: str, version: Optional[str] = None) -> List[str]:
        """Decide which versions of a gem to process."""
        if version:
            return [version]

        all_versions = self.fetcher.list_versions(gem_name)
        if not self.config.pipeline.latest_only or not all_versions:
            return all_versions

        stable = [v for v in all_versions if not any(m in v for m in PRERELEASE_MARKERS)]
        return [stable[0]] if stable else [all_versions[0]]

    def process_gem(self, gem_name: str, version: Optional[str] = None) -> bool:
        """Process one gem (all selected versions). True if any version succeeded."""
        logger.info("Processing {}{}...", gem_name, f" ({version})" if version else "")

        try:
            versions = self.select_versions(gem_name, version)
        except Exception as e:
            logger.error(f"Error processing {gem_name}: {e}")
            return False

        if not versions:
            logger.warning("No versions found for {}", gem_name)
            return False

        results = [self.process_gem_version(gem_name, ver) for ver in versions]
        success_count = sum(1 for r in results if r.success)

        if len(versions) > 1:
            logger.info("Processed {}/{} versions of {}", success_count, len(versions), gem_name)

        return success_count > 0

    def process_gem_version(self, gem_name: str, version: str) -> VersionResult:
        """Run the full pipeline for a single gem version.

        Any failure is contained here so one bad version never aborts a batch.
        """
        label = f"{gem_name} {version}"
        try:
            identity = PackageIdentity(name=gem_name, version=version)
            if self.store.exists(identity) and not self.config.pipeline.force:
                logger.info(
                    "Skipping {} - data already exists (use --force to overwrite)", identity
                )
                return VersionResult(gem=gem_name, version=version, success=True, skipped=True)

            logger.info("Analyzing {}...", identity)
            artifact = self.fetcher.fetch(gem_name, version)
            hints = self.collect_hints(artifact)
            dependencies = self.matcher.match(hints)

            if dependencies:
                logger.info("Found {} system dependencies:", len(dependencies))
                for dep in sorted(dependencies):
                    logger.info("  - {}", dep)
            else:
                logger.info("No system dependencies found")

            record = self.generator.generate(
                identity, dependencies, notes=self.generate_notes(artifact, hints)
            )
            self.store.write(record)
        except Exception as e:
            logger.error(f"Error processing {label}: {e}")
            logger.opt(exception=e).debug("Traceback for {}", label)
            return VersionResult(gem=gem_name, version=version, success=False, error=str(e))

        logger.info("Generated dependency data for {}", label)
        return VersionResult(
            gem=gem_name,
            version=version,
            success=True,
            dependencies=list(record.dependencies),
        )

    def collect_hints(self, artifact: RawArtifact) -> Set[str]:
        """Union the hints found in the README and extconf.rb text."""
        readme_hints = self.readme_extractor.extract(artifact.documentation_text)
        extconf_hints = self.extconf_extractor.extract(artifact.build_config_text)
        return readme_hints | extconf_hints

    @staticmethod
    def generate_notes(artifact: RawArtifact, hints: Set[str]) -> str:
        """Describe where dependency hints came from."""
        notes: List[str] = []
        if artifact.documentation_text is not None:
            notes.append("Dependencies detected from README")
        if artifact.build_config_text is not None:
            notes.append("Dependencies detected from extconf.rb")
        if hints:
            notes.append(f"Found {len(hints)} dependency hints: {', '.join(sorted(hints))}")
        return ". ".join(notes)

    def process_list(self, list_file: str | Path) -> BatchResult:
        """Process gems listed one per line as ``name [version]``."""
        results = BatchResult()
        for gem_name, version in self.read_gem_list(list_file):
            if self.process_gem(gem_name, version):
                results.success += 1
            else:
                results.failed += 1
        return results

    @staticmethod
    def read_gem_list(list_file: str | Path) -> Sequence[tuple[str, Optional[str]]]:
        """Parse a gem list file, skipping blank lines and ``#`` comments."""
        entries: List[tuple[str, Optional[str]]] = []
        for line in Path(list_file).read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            parts = line.split(None, 1)
            entries.append((parts[0], parts[1].strip() if len(parts) > 1 else None))
        return entries
