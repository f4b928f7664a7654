"""
Story record extraction.

Turns one raw document into an ExtractedRecord:
clean content region -> rewrite internal links -> convert to Markdown ->
resolve identity and fields -> count words.

Identity (slug, genre) and each text field are resolved by an ordered
tuple of resolvers. A resolver returns a value or None; the first value
wins and the field default is used when every resolver returns None.
"""

import json
import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Iterator
from urllib.parse import unquote, urlsplit

from bs4 import BeautifulSoup, Tag
from markdownify import markdownify as md

from story_pipeline import constants
from story_pipeline.exceptions import ExtractionFailure
from story_pipeline.scraper.models import ExtractedRecord
from story_pipeline.timestamps import utc_now_iso

logger = logging.getLogger(__name__)

ARTICLE_TYPE = "Article"

Identity = tuple[str, str]


@dataclass
class DocumentContext:
    """Inputs shared by all resolvers for one document."""

    soup: BeautifulSoup
    filename: str
    metadata: dict[str, Any] | None


def first_resolved(resolvers, context: DocumentContext):
    """Return the first non-None resolver result, or None."""
    for resolver in resolvers:
        value = resolver(context)
        if value is not None:
            return value
    return None


def _clean(value: Any) -> str | None:
    """Trim a candidate string; blanks and non-strings resolve to None."""
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


# =============================================================================
# Structured metadata
# =============================================================================

def _json_ld_nodes(data: Any) -> Iterator[dict[str, Any]]:
    if isinstance(data, list):
        for item in data:
            yield from _json_ld_nodes(item)
    elif isinstance(data, dict):
        yield data
        if "@graph" in data:
            yield from _json_ld_nodes(data["@graph"])


def _is_article(node: dict[str, Any]) -> bool:
    node_type = node.get("@type")
    if isinstance(node_type, list):
        return ARTICLE_TYPE in node_type
    return node_type == ARTICLE_TYPE


def find_article_metadata(soup: BeautifulSoup) -> dict[str, Any] | None:
    """
    Find the first JSON-LD block describing an Article.

    Blocks that are not valid JSON are ignored.

    Args:
        soup: Parsed document

    Returns:
        The Article node, or None
    """
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        raw = script.string or script.get_text()
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            logger.debug("Skipping unparsable JSON-LD block")
            continue
        for node in _json_ld_nodes(data):
            if _is_article(node):
                return node
    return None


def metadata_url(metadata: dict[str, Any] | None) -> str | None:
    """Return the canonical URL declared by article metadata."""
    if not metadata:
        return None
    main_entity = metadata.get("mainEntityOfPage")
    if isinstance(main_entity, dict):
        url = _clean(main_entity.get("@id")) or _clean(main_entity.get("url"))
        if url:
            return url
    elif isinstance(main_entity, str) and _clean(main_entity):
        return main_entity.strip()
    return _clean(metadata.get("url"))


# =============================================================================
# Identity resolution
# =============================================================================

def slug_to_title(slug: str | None) -> str:
    """
    Build a display name from a hyphenated slug.

    Example:
        slug_to_title("science-fiction")  # "Science Fiction"
    """
    if not slug:
        return "Unknown"
    return " ".join(word[:1].upper() + word[1:] for word in slug.split("-"))


def identity_segment(segment: str) -> str | None:
    """
    Make one decoded path segment usable as a slug or genre.

    Decoded separators become "-". Dot segments and segments holding NUL
    resolve to None so the next identity resolver is tried.
    """
    name = segment.replace("/", "-").replace("\\", "-")
    if name.strip() in (".", "..") or "\x00" in name:
        return None
    return name


def parse_identity_url(url: str | None) -> Identity | None:
    """
    Derive (slug, genre) from the last two non-empty path segments of a URL.

    With a single segment the genre is the uncategorized sentinel. URLs
    that cannot be parsed, have no path or end in an unusable segment
    resolve to None.
    """
    if not url:
        return None
    try:
        path = urlsplit(url.strip()).path
    except ValueError:
        return None

    segments = [identity_segment(unquote(segment)) for segment in path.split("/") if segment]
    if not segments or segments[-1] is None:
        return None
    if len(segments) == 1:
        return segments[0], constants.UNCATEGORIZED_GENRE
    if segments[-2] is None:
        return None
    return segments[-1], segments[-2]


def canonical_link(soup: BeautifulSoup) -> str | None:
    for link in soup.find_all("link", href=True):
        rel = link.get("rel") or []
        if isinstance(rel, str):
            rel = rel.split()
        if "canonical" in [r.lower() for r in rel]:
            return _clean(link["href"])
    return None


def identity_from_metadata(context: DocumentContext) -> Identity | None:
    return parse_identity_url(metadata_url(context.metadata))


def identity_from_canonical(context: DocumentContext) -> Identity | None:
    return parse_identity_url(canonical_link(context.soup))


def identity_from_filename(context: DocumentContext) -> Identity:
    slug = context.filename
    if slug.endswith(constants.RAW_DOCUMENT_SUFFIX):
        slug = slug[: -len(constants.RAW_DOCUMENT_SUFFIX)]
    slug = identity_segment(slug) or constants.EMPTY_SLUG_FALLBACK
    return slug, constants.UNCATEGORIZED_GENRE


IDENTITY_RESOLVERS: tuple[Callable[[DocumentContext], Identity | None], ...] = (
    identity_from_metadata,
    identity_from_canonical,
    identity_from_filename,
)


def identity_url(context: DocumentContext) -> str | None:
    """URL the identity came from, if any (used to find the site origin)."""
    for url in (metadata_url(context.metadata), canonical_link(context.soup)):
        if parse_identity_url(url) is not None:
            return url
    return None


# =============================================================================
# Field resolution
# =============================================================================

def _meta_content(soup: BeautifulSoup, **attrs: str) -> str | None:
    tag = soup.find("meta", attrs=attrs)
    if tag is None:
        return None
    return _clean(tag.get("content"))


def _metadata_author(context: DocumentContext) -> str | None:
    if not context.metadata:
        return None
    author = context.metadata.get("author")
    if isinstance(author, list):
        author = author[0] if author else None
    if isinstance(author, dict):
        return _clean(author.get("name"))
    return _clean(author)


def _metadata_field(name: str) -> Callable[[DocumentContext], str | None]:
    def resolver(context: DocumentContext) -> str | None:
        return _clean((context.metadata or {}).get(name))

    resolver.__name__ = f"metadata_{name}"
    return resolver


def _first_heading(context: DocumentContext) -> str | None:
    heading = context.soup.find("h1")
    return _clean(heading.get_text()) if heading else None


TITLE_RESOLVERS = (_metadata_field("headline"), _first_heading)

AUTHOR_RESOLVERS = (
    _metadata_author,
    lambda context: _meta_content(context.soup, name="author"),
)

EXCERPT_RESOLVERS = (
    _metadata_field("description"),
    lambda context: _meta_content(context.soup, name="description"),
)

DATE_RESOLVERS = (
    _metadata_field("datePublished"),
    lambda context: _meta_content(context.soup, property="article:published_time"),
)


# =============================================================================
# Content conversion
# =============================================================================

def strip_presentation(region: Tag) -> None:
    """Remove decorative wrappers, scripts and line breaks from the region."""
    for element in region.find_all(constants.PRESENTATION_TAGS):
        # Nested matches are already gone with their parent
        if element.decomposed:
            continue
        element.decompose()


def rewrite_internal_links(region: Tag, site_url: str | None) -> int:
    """
    Make absolute links to the site root-relative.

    Args:
        region: Content element, rewritten in place
        site_url: Canonical origin such as "https://www.example.com"

    Returns:
        Number of attributes rewritten
    """
    if not site_url:
        return 0
    base = site_url.rstrip("/")
    rewritten = 0

    for attr in ("href", "src"):
        for element in region.find_all(attrs={attr: True}):
            value = element[attr]
            if value == base:
                element[attr] = "/"
            elif value.startswith(base + "/"):
                element[attr] = value[len(base):]
            else:
                continue
            rewritten += 1

    return rewritten


def html_to_markdown(html: str) -> str:
    """
    Convert HTML to Markdown using markdownify.

    Args:
        html: HTML fragment

    Returns:
        Markdown with runs of blank lines collapsed
    """
    markdown = md(
        html,
        heading_style="ATX",
        bullets="-",
        escape_asterisks=False,
        escape_underscores=False,
    )

    lines = markdown.split("\n")
    cleaned_lines = []
    prev_blank = False

    for line in lines:
        is_blank = not line.strip()
        if is_blank and prev_blank:
            continue
        cleaned_lines.append(line.rstrip())
        prev_blank = is_blank

    return "\n".join(cleaned_lines).strip()


def count_words(text: str) -> int:
    return len(text.split())


def reading_time_label(word_count: int) -> str:
    """Reading time at WORDS_PER_MINUTE, e.g. "3 min"."""
    return f"{math.ceil(word_count / constants.WORDS_PER_MINUTE)} min"


def _origin(url: str | None) -> str | None:
    if not url:
        return None
    try:
        parts = urlsplit(url)
    except ValueError:
        return None
    if parts.scheme and parts.netloc:
        return f"{parts.scheme}://{parts.netloc}"
    return None


# =============================================================================
# Pipeline
# =============================================================================

def extract_record(
    html: str,
    filename: str,
    site_url: str = "",
    content_selector: str = constants.DEFAULT_CONTENT_SELECTOR,
) -> ExtractedRecord | None:
    """
    Full extraction: resolve fields -> clean region -> convert -> count.

    Args:
        html: Raw document markup
        filename: Raw document filename (the source identifier)
        site_url: Canonical site origin; derived from the identity URL if empty
        content_selector: CSS selector of the content region

    Returns:
        ExtractedRecord, or None if the document has no content region

    Raises:
        ExtractionFailure: If the markup cannot be parsed
    """
    try:
        soup = BeautifulSoup(html, "lxml")
    except Exception as e:
        raise ExtractionFailure(filename, f"Unparsable markup: {e}") from e

    context = DocumentContext(soup=soup, filename=filename, metadata=find_article_metadata(soup))

    # Fields are resolved before the content region is modified
    slug, genre_slug = first_resolved(IDENTITY_RESOLVERS, context)
    title = first_resolved(TITLE_RESOLVERS, context) or slug.strip()
    author = first_resolved(AUTHOR_RESOLVERS, context) or constants.DEFAULT_AUTHOR
    excerpt = first_resolved(EXCERPT_RESOLVERS, context) or ""
    created_at = first_resolved(DATE_RESOLVERS, context) or utc_now_iso()

    region = soup.select_one(content_selector)
    if region is None:
        logger.error(f"No content found in {filename}")
        return None

    strip_presentation(region)
    rewrite_internal_links(region, site_url or _origin(identity_url(context)))

    inner_html = region.decode_contents().strip()
    if not inner_html:
        logger.error(f"No content found in {filename}")
        return None

    body = html_to_markdown(inner_html)
    word_count = count_words(region.get_text())

    return ExtractedRecord(
        source_identifier=filename,
        candidate_slug=slug.strip(),
        candidate_genre_slug=genre_slug.strip(),
        title=title,
        author=author,
        excerpt=excerpt,
        genre_name=slug_to_title(genre_slug.strip()),
        reading_time=reading_time_label(word_count),
        created_at=created_at,
        word_count=word_count,
        body=body,
    )
