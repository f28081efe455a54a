"""Slide images taken from the media parts of a PPTX archive."""

from __future__ import annotations

import posixpath
import re
import zipfile
from pathlib import Path
from xml.etree import ElementTree

from shared.errors import InputError
from shared.utils import ensure_directory, setup_logging

from .base import ImageSource

logger = setup_logging("pptx-extractor")

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg"}
PRESENTATION_NS = "http://schemas.openxmlformats.org/presentationml/2006/main"
RELATIONSHIP_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
PACKAGE_REL_NS = "http://schemas.openxmlformats.org/package/2006/relationships"
_NUMBER = re.compile(r"\d+")


def _numeric_key(name: str) -> tuple[int, str]:
    match = _NUMBER.search(posixpath.basename(name))
    return (int(match.group()) if match else 0, name)


def _read_relationships(archive: zipfile.ZipFile, rels_name: str) -> dict[str, tuple[str, str]]:
    """Map relationship id to ``(type, absolute part name)`` for one ``.rels`` part."""
    try:
        root = ElementTree.fromstring(archive.read(rels_name))
    except KeyError:
        return {}
    # a/_rels/b.xml.rels describes a/b.xml; targets are relative to a/
    base_dir = posixpath.dirname(posixpath.dirname(rels_name))
    relationships = {}
    for rel in root.findall(f"{{{PACKAGE_REL_NS}}}Relationship"):
        target = rel.get("Target", "")
        if rel.get("TargetMode") == "External":
            continue
        part = target.lstrip("/") if target.startswith("/") else posixpath.normpath(posixpath.join(base_dir, target))
        relationships[rel.get("Id", "")] = (rel.get("Type", ""), part)
    return relationships


class PptxMediaImageSource(ImageSource):
    """Extract one picture per slide from ``ppt/media``.

    Slide order comes from ``ppt/presentation.xml``; each slide contributes the
    first picture it references, and a slide with none rejects the deck.
    Archives without slide-level picture relationships fall back to all media
    in numeric file-name order.
    """

    extensions = (".pptx",)

    def extract(self, source_path: str, output_dir: str) -> list[str]:
        ensure_directory(output_dir)
        try:
            archive = zipfile.ZipFile(source_path)
        except (zipfile.BadZipFile, OSError) as exc:
            raise InputError(f"Could not open presentation archive: {exc}") from exc

        with archive:
            names = set(archive.namelist())
            media_parts = self._slide_pictures(archive, names) or self._all_media(names)
            image_paths = []
            for index, part in enumerate(media_parts):
                suffix = posixpath.splitext(part)[1].lower()
                target = Path(output_dir) / f"page_{index}{suffix}"
                target.write_bytes(archive.read(part))
                image_paths.append(str(target.resolve()))

        logger.info("Extracted %d slide images from %s", len(image_paths), Path(source_path).name)
        return image_paths

    def _slide_pictures(self, archive: zipfile.ZipFile, names: set[str]) -> list[str]:
        pictures = []
        missing = []
        for position, slide_part in enumerate(self._ordered_slides(archive, names), start=1):
            rels_name = posixpath.join(
                posixpath.dirname(slide_part), "_rels", f"{posixpath.basename(slide_part)}.rels"
            )
            images = [
                part
                for rel_type, part in _read_relationships(archive, rels_name).values()
                if rel_type.endswith("/image")
                and part in names
                and posixpath.splitext(part)[1].lower() in IMAGE_EXTENSIONS
            ]
            if images:
                pictures.append(sorted(images, key=_numeric_key)[0])
            else:
                missing.append(position)
        if pictures and missing:
            raise InputError(
                f"Slide {', '.join(map(str, missing))} has no picture to narrate",
                cause="Export the deck as PDF to include text-only slides",
            )
        return pictures

    @staticmethod
    def _ordered_slides(archive: zipfile.ZipFile, names: set[str]) -> list[str]:
        slide_parts = sorted(
            (name for name in names if re.fullmatch(r"ppt/slides/slide\d+\.xml", name)),
            key=_numeric_key,
        )
        try:
            presentation = ElementTree.fromstring(archive.read("ppt/presentation.xml"))
        except (KeyError, ElementTree.ParseError):
            return slide_parts

        relationships = _read_relationships(archive, "ppt/_rels/presentation.xml.rels")
        ordered = []
        for slide_id in presentation.iter(f"{{{PRESENTATION_NS}}}sldId"):
            rel = relationships.get(slide_id.get(f"{{{RELATIONSHIP_NS}}}id", ""))
            if rel and rel[1] in names:
                ordered.append(rel[1])
        return ordered or slide_parts

    @staticmethod
    def _all_media(names: set[str]) -> list[str]:
        media = [
            name
            for name in names
            if name.startswith("ppt/media/") and posixpath.splitext(name)[1].lower() in IMAGE_EXTENSIONS
        ]
        return sorted(media, key=_numeric_key)
