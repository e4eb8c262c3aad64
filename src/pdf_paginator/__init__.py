"""
PDF Paginator - numbered page images to a single branded PDF

This package turns a set of page images named ``{number}_*.png`` into one PDF:
every page except the cover is laid onto a header/footer template, stamped
with the document title and a ``Pág. NN`` label, and the pages are assembled
in page-number order. It can run as:

- a one-shot local command that scans a directory (``pdf-paginator``)
- a remote job service with HTTP polling and WebSocket progress
  (``pdf-paginator-agent``)

Key Components:
    - naming: page filename convention and page labels
    - text_overlay: single-line text layers rendered from embedded font data
    - compositor: per-page compositing (cover pass-through, template, text)
    - sequencer: validation, ordering and sequential processing with progress
    - assembler: PDF assembly with pixel-to-point page sizing
    - pipeline: stateless end-to-end entry point used by both surfaces
    - job_manager: per-job state, background execution and cancellation
    - main: FastAPI application (HTTP and WebSocket endpoints)
    - configuration: OmegaConf defaults and per-job overrides

Usage:
    Generate a document from the current directory:
        pdf-paginator "DOCUMENT TITLE"

    Run the service:
        pdf-paginator-agent --port 3838
"""

__version__ = "2.0.0"
