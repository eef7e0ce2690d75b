# snapnorm/schemas/models.py

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

# =========================
# Filename canonicalization
# =========================

# Result classification for one file in a canonicalization run.
RenameStatus = Literal["renamed", "dry_run", "noop", "error"]


class CanonicalizeFlags(BaseModel):
    """Runtime switches for a canonicalization run (mirrors the CLI flags)."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    apply: bool = Field(False, description="If True, perform renames. Default is a dry-run that only reports.")
    quiet: bool = Field(False, description="If True, suppress per-file reports.")
    prefer_canonical: bool = Field(
        True,
        description="If True, the <link rel=canonical> href outranks og:url/twitter:url. False swaps that priority.",
    )


class RenamePlan(BaseModel):
    """
    Pure planning output for one snapshot file: the name it *should* have.

    `desired_name` is None when nothing justifies a rename (no URL signal and no
    full-width punctuation to normalize). No filesystem state is consulted.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    current_name: str = Field(..., description="Basename of the file as found on disk.")
    desired_name: str | None = Field(None, description="Sanitized canonical basename, before collision resolution.")
    source_url: str | None = Field(None, description="Normalized source URL the name was derived from, if any.")
    reason: str = Field("", description="Short provenance note (e.g. 'url', 'punctuation', 'no-url').")

    @property
    def is_noop(self) -> bool:
        return self.desired_name is None or self.desired_name == self.current_name


class RenameOutcome(BaseModel):
    """What happened (or would happen, in dry-run) to one file."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, extra="ignore")

    path: Path = Field(..., description="Original path of the snapshot file.")
    status: RenameStatus = Field(..., description="renamed | dry_run | noop | error")
    old_name: str = Field(..., description="Basename before the run.")
    new_name: str | None = Field(None, description="Final basename after collision resolution (None for noop/error).")
    source_url: str | None = Field(None, description="Source URL used to derive the name, if any.")
    message: str | None = Field(None, description="Error message for status='error'.")


# =========================
# Inline asset compaction
# =========================

# Terminal (and initial) states of the budget loop.
LoopState = Literal["scanning", "converged", "stalled", "exhausted_parameters"]


class CompactionPolicy(BaseModel):
    """
    Knobs for shrinking a snapshot's inline payloads.

    quality/max_width are the *starting* parameters; the budget loop tightens
    them by the configured steps down to the floors.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    max_width: int = Field(1600, ge=1, description="Maximum pixel size of either image dimension after downscaling.")
    quality: int = Field(70, ge=1, le=100, description="Lossy (WebP) encoder quality for the first pass.")
    target_bytes: int | None = Field(
        None,
        ge=0,
        description="Byte budget for the whole document. None means 'current size', i.e. exactly one pass.",
    )
    gif_to_webp: bool = Field(False, description="Convert GIFs to animated WebP instead of re-optimizing them as GIF.")

    quality_step: int = Field(10, ge=1, description="Quality decrement applied between passes.")
    quality_floor: int = Field(30, ge=1, le=100, description="Lowest quality the loop will try.")
    width_step: int = Field(200, ge=1, description="Width decrement applied once quality reached its floor.")
    width_floor: int = Field(400, ge=1, description="Smallest width cap the loop will try.")
    max_passes: int | None = Field(
        None,
        ge=1,
        description="Optional caller-imposed bound on the number of passes (checked between passes).",
    )

    strip_fonts: bool = Field(False, description="Remove @font-face rules and embedded font payloads.")
    strip_scripts: bool = Field(False, description="Remove <script> blocks.")
    strip_tracking_iframes: bool = Field(False, description="Remove known third-party tracking iframes (Stripe etc.).")
    strip_large_styles: bool = Field(False, description="Remove <style> blocks larger than style_threshold bytes.")
    style_threshold: int = Field(256 * 1024, ge=0, description="Size (UTF-8 bytes) above which a <style> block is removed.")

    extract_images: bool = Field(False, description="Write payloads to files under asset_root instead of re-inlining them.")
    asset_root: Path = Field(
        default=Path("assets/snapshots"),
        description="Root directory for externalized assets; one sub-directory per document.",
    )


class PassResult(BaseModel):
    """One full scan-and-replace traversal of a document."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    index: int = Field(..., ge=1, description="1-based pass number.")
    quality: int = Field(..., description="Quality used for this pass.")
    max_width: int = Field(..., description="Width cap used for this pass.")
    resources: int = Field(0, ge=0, description="Embedded resources located by the scanner.")
    replacements: int = Field(0, ge=0, description="Resources actually substituted with smaller bytes.")
    failures: int = Field(0, ge=0, description="Resources left unchanged because decoding/encoding failed.")
    bytes_before: int = Field(..., ge=0, description="Document size (UTF-8) before the pass.")
    bytes_after: int = Field(..., ge=0, description="Document size (UTF-8) after the pass.")


class CompactionReport(BaseModel):
    """Outcome of a budget loop run over one document."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    state: LoopState = Field(..., description="Terminal state: converged | stalled | exhausted_parameters.")
    target_bytes: int = Field(..., ge=0, description="Budget the loop tried to meet.")
    bytes_before: int = Field(..., ge=0, description="Document size before the first pass.")
    bytes_after: int = Field(..., ge=0, description="Document size after the last pass.")
    passes: list[PassResult] = Field(default_factory=list, description="Per-pass details, in order.")
    encodes: int = Field(0, ge=0, description="Re-encoding operations performed (cache misses).")
    cache_hits: int = Field(0, ge=0, description="Resources served from the per-document cache.")

    @property
    def met_target(self) -> bool:
        return self.bytes_after <= self.target_bytes


class StripResult(BaseModel):
    """What a single content-stripping filter removed."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = Field(..., description="Filter name (fonts | scripts | large_styles | tracking_iframes | data_srcset).")
    removed: int = Field(0, ge=0, description="Number of blocks/references removed.")
    bytes_removed: int = Field(0, ge=0, description="UTF-8 bytes removed from the document.")


class ExternalizedAsset(BaseModel):
    """A payload written out of the document into the asset directory."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, extra="ignore")

    path: Path = Field(..., description="Where the asset file was written.")
    reference: str = Field(..., description="Relative POSIX path written into the document.")
    sha256: str = Field(..., min_length=32, max_length=128, description="Content hash of the decoded source bytes (hex).")
    mime: str = Field(..., description="MIME type of the written bytes.")
    bytes_size: int = Field(..., ge=0, description="Size of the written file.")


class ExternalizeReport(BaseModel):
    """Outcome of an externalization run over one document."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, extra="ignore")

    asset_dir: Path = Field(..., description="Per-document asset directory.")
    assets: list[ExternalizedAsset] = Field(default_factory=list, description="Distinct files written, in order.")
    references: int = Field(0, ge=0, description="Inline payloads rewritten to a file reference.")
    failures: int = Field(0, ge=0, description="Payloads left inline because they could not be decoded or written.")
    bytes_before: int = Field(..., ge=0, description="Document size before externalization.")
    bytes_after: int = Field(..., ge=0, description="Document size after externalization.")


class CompactOutcome(BaseModel):
    """Everything the compactor did to one file."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, extra="ignore")

    path: Path = Field(..., description="Snapshot file that was processed.")
    bytes_before: int = Field(..., ge=0, description="File size before processing.")
    bytes_after: int = Field(..., ge=0, description="File size after processing.")
    strips: list[StripResult] = Field(default_factory=list, description="Stripping filters that ran, in order.")
    compaction: CompactionReport | None = Field(None, description="Budget loop report (inline mode).")
    externalized: ExternalizeReport | None = Field(None, description="Externalization report (--extract-images mode).")
    written: bool = Field(False, description="True if the document content changed and was rewritten.")
