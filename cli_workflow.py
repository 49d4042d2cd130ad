#!/usr/bin/env python3
"""
CLI workflow runner for the note capture pipeline.

Provides command-line interface for OCR of note pages with figure capture.
"""
import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent))

from openai import AsyncOpenAI

from config.settings import settings
from data.blob_store import FigureBlobStore, InMemoryBlobStore
from data.database import session_scope
from services.figure_pipeline import FigureExtractionPipeline
from services.ocr_service import OCRService
from services.storage_service import DocumentStorageService
from utils.image_utils import image_file_to_bytes


async def process_document_cli(file_paths, persona: str = None, output_path: str = None):
    """OCR page images, capture figures and store the document."""
    print("=" * 60)
    print(f"Processing {len(file_paths)} page(s)")
    print("=" * 60)

    missing = [p for p in file_paths if not os.path.exists(p)]
    if missing:
        print(f"❌ Error: File not found: {', '.join(missing)}")
        return None

    client = AsyncOpenAI(api_key=settings.vllm_api_key, base_url=settings.vllm_server_url)

    with session_scope() as session:
        storage = DocumentStorageService(session)
        document = storage.create_document(
            filename=os.path.basename(file_paths[0]),
            total_pages=len(file_paths)
        )
        document_id = document.id
        print(f"✓ Document created: {document_id}")

        service = OCRService(
            client=client,
            blob_store=FigureBlobStore(session),
            model=settings.vllm_model,
            figure_config=settings.get_figure_config(),
            **settings.get_ocr_config()
        )

        total_figures = 0
        for page_num, path in enumerate(file_paths, start=1):
            print(f"  Page {page_num}/{len(file_paths)}...", end=" ", flush=True)
            page_result = await service.process_page(
                image_file_to_bytes(path),
                page_num=page_num,
                persona=persona or settings.ocr_persona or None
            )
            storage.save_page_result(document_id, page_result)

            if page_result.ok:
                total_figures += len(page_result.figures)
                print(f"✓ ({len(page_result.figures)} figures)")
            else:
                print(f"⚠️  {page_result.error}")

        markdown = storage.get_document_markdown(document_id)

    print(f"\n✓ OCR complete: {total_figures} figures captured")

    if output_path:
        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(markdown)
        print(f"✓ Markdown written to: {output_path}")

    print("\n" + "=" * 60)
    print(f"✓ Complete! Document ID: {document_id}")
    print("=" * 60)

    return document_id


def extract_figures_cli(image_path: str, text_path: str, output_dir: str = None):
    """Run figure capture on an existing OCR response (no model call)."""
    with open(text_path, 'r', encoding='utf-8') as f:
        text = f.read()

    store = InMemoryBlobStore()
    pipeline = FigureExtractionPipeline(store, config=settings.get_figure_config())
    result = pipeline.process(text, image_file_to_bytes(image_path))

    stats = result.stats
    print(f"Tags: {stats['tags']}  Clusters: {stats['clusters']}  "
          f"Too small: {stats['size_filtered']}  NMS: {stats['nms_removed']}  "
          f"Hash dupes: {stats['hash_dupes']}  Crop failures: {stats['crop_failures']}")
    print(f"Figures: {stats['crops']}")

    if output_dir:
        out = Path(output_dir)
        out.mkdir(parents=True, exist_ok=True)
        for figure in result.figures:
            (out / f"{figure.image_id}.jpg").write_bytes(store.get(figure.image_id))
        (out / "notes.md").write_text(result.text, encoding='utf-8')
        print(f"✓ Written to: {out}")
    else:
        print("-" * 60)
        print(result.text)


def list_documents_cli():
    """List all documents in database."""
    with session_scope() as session:
        storage = DocumentStorageService(session)
        documents = storage.list_documents(limit=50)

        if not documents:
            print("No documents found in database.")
            return

        print(f"\nFound {len(documents)} documents:")
        print("-" * 80)
        print(f"{'ID':<38} {'Filename':<30} {'Pages':<6} {'Created'}")
        print("-" * 80)

        for doc in documents:
            created = doc.created_at.strftime("%Y-%m-%d %H:%M")
            print(f"{doc.id:<38} {doc.filename:<30} {doc.total_pages:<6} {created}")


def export_markdown_cli(document_id: str, output_path: str = None):
    """Export document markdown to file."""
    with session_scope() as session:
        storage = DocumentStorageService(session)
        document = storage.get_document(document_id)

        if not document:
            print(f"❌ Document not found: {document_id}")
            return

        markdown = storage.get_document_markdown(document_id)

        if output_path is None:
            output_path = f"{document.filename}.md"

        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(markdown)

        print(f"✓ Markdown exported to: {output_path}")
        print(f"  Pages: {document.total_pages}")
        print(f"  Size: {len(markdown)} characters")


def export_figures_cli(document_id: str, output_dir: str):
    """Write a document's figure images to a directory."""
    with session_scope() as session:
        storage = DocumentStorageService(session)
        if not storage.get_document(document_id):
            print(f"❌ Document not found: {document_id}")
            return

        figures = storage.get_document_figures(document_id)
        out = Path(output_dir)
        out.mkdir(parents=True, exist_ok=True)

        for image_id, figure in figures.items():
            (out / f"{image_id}.jpg").write_bytes(figure.data)
            print(f"  {image_id}: {figure.caption}")

        print(f"✓ {len(figures)} figures exported to: {out}")


def main():
    parser = argparse.ArgumentParser(
        description='Note capture CLI: OCR with figure extraction'
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')
    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # Process command
    process_parser = subparsers.add_parser('process', help='OCR page images into a document')
    process_parser.add_argument('files', nargs='+', help='Page images in reading order')
    process_parser.add_argument('--persona', type=str, default=None, help='Extra prompt context')
    process_parser.add_argument('-o', '--output', type=str, help='Write markdown to this file')

    # Extract command (offline)
    extract_parser = subparsers.add_parser('extract', help='Capture figures from an existing OCR response')
    extract_parser.add_argument('image', type=str, help='Page image')
    extract_parser.add_argument('text', type=str, help='File with the OCR output for the image')
    extract_parser.add_argument('-o', '--output-dir', type=str, help='Write figures and notes here')

    # List command
    subparsers.add_parser('list', help='List all documents')

    # Export commands
    export_parser = subparsers.add_parser('export', help='Export document markdown')
    export_parser.add_argument('document_id', type=str, help='Document ID')
    export_parser.add_argument('-o', '--output', type=str, help='Output file path')

    figures_parser = subparsers.add_parser('export-figures', help='Export document figure images')
    figures_parser.add_argument('document_id', type=str, help='Document ID')
    figures_parser.add_argument('output_dir', type=str, help='Output directory')

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    if args.command == 'process':
        asyncio.run(process_document_cli(
            file_paths=args.files,
            persona=args.persona,
            output_path=args.output
        ))
    elif args.command == 'extract':
        extract_figures_cli(args.image, args.text, args.output_dir)
    elif args.command == 'list':
        list_documents_cli()
    elif args.command == 'export':
        export_markdown_cli(args.document_id, args.output)
    elif args.command == 'export-figures':
        export_figures_cli(args.document_id, args.output_dir)
    else:
        parser.print_help()


if __name__ == '__main__':
    main()
