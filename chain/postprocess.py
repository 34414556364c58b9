# chain/postprocess.py - Link repair and normalization of model answers
"""
Rewrites a raw model answer before it is shown in the widget.

The answer may contain HTML anchors, markdown links and bare URLs. Every stage
parses the text into plain segments and links, transforms them, and renders
all surviving links back as HTML anchors. Stages are order-dependent:

    1. link bare URLs
    2. repair malformed links
    3. substitute the datasheet placeholder and normalize phrasing
    4. link canonical entities (RFQ form, datasheet, current product) once each
    5. clean up empty or leftover markup

Running the pipeline on its own output changes nothing.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Union

from config import (
    DATASHEET_PLACEHOLDER,
    DISALLOWED_LINK_LABELS,
    LINK_STYLE,
    PHRASE_SUBSTITUTIONS,
    RFQ_FORM_URL,
    SITE_BASE_URL,
    SITE_DOMAIN,
)

logger = logging.getLogger("askbot.chain")

LINK_PATTERN = re.compile(
    r'<a\s[^>]*?href\s*=\s*["\']([^"\']*)["\'][^>]*>(.*?)</a>'
    r'|\[([^\[\]]*)\]\(([^()\s"\'<>]*)\)',
    re.IGNORECASE | re.DOTALL,
)
RAW_URL_PATTERN = re.compile(r'(?<![="\'/\w])https?://[^\s<>"\'\[\]()]+', re.IGNORECASE)
QUALIFIED_URL_PATTERN = re.compile(
    r'^https?://[a-z0-9-]+(\.[a-z0-9-]+)+(:\d+)?([/?#]\S*)?$', re.IGNORECASE
)
STRAY_ANCHOR_PATTERN = re.compile(r'</?a\b[^>]*>', re.IGNORECASE)
TAG_PATTERN = re.compile(r'<[^>]+>')
SEPARATOR_PATTERN = re.compile(r'^[\s:\-]*$')
MODEL_NUMBER_PATTERN = re.compile(r'^([A-Za-z0-9]+(?:[-.][A-Za-z0-9]+)*)')
COMPILED_SUBSTITUTIONS = [(re.compile(pattern, re.IGNORECASE), repl) for pattern, repl in PHRASE_SUBSTITUTIONS]


@dataclass
class Link:
    label: str
    target: str


Segment = Union[str, Link]


@dataclass
class Entity:
    """A link target that may appear at most once per answer."""
    key: str
    name: str
    url: str
    pattern: re.Pattern


@dataclass
class PostProcessContext:
    datasheet_url: Optional[str] = None
    entities: List[Entity] = field(default_factory=list)


# --- Parsing and rendering ---

def parse_segments(text: str) -> List[Segment]:
    segments: List[Segment] = []
    pos = 0
    for match in LINK_PATTERN.finditer(text):
        if match.start() > pos:
            segments.append(text[pos:match.start()])
        if match.group(1) is not None:
            target, label = match.group(1), TAG_PATTERN.sub("", match.group(2))
        else:
            label, target = match.group(3), match.group(4)
        segments.append(Link(label.strip(), target.strip()))
        pos = match.end()
    if pos < len(text):
        segments.append(text[pos:])
    return segments


def render_link(link: Link) -> str:
    return f'<a href="{link.target}" target="_blank" style="{LINK_STYLE}">{link.label}</a>'


def render_segments(segments: List[Segment]) -> str:
    return "".join(render_link(seg) if isinstance(seg, Link) else seg for seg in segments)


def _map_segments(text: str, on_plain: Callable[[str], List[Segment]], on_link: Callable[[Link], Segment]) -> str:
    result: List[Segment] = []
    for seg in parse_segments(text):
        if isinstance(seg, Link):
            result.append(on_link(seg))
        else:
            result.extend(on_plain(seg))
    return render_segments(result)


# --- Helpers ---

def is_qualified_url(url: str) -> bool:
    return bool(url) and QUALIFIED_URL_PATTERN.match(url) is not None


def sniff_label(url: str) -> str:
    """Pick visible text for a bare URL."""
    lower = url.lower()
    if "rfq-form" in lower:
        return "RFQ Form"
    if "datasheet" in lower or ".pdf" in lower:
        return "datasheet"
    if SITE_DOMAIN in lower:
        return "product page"
    return "here"


def normalize_url(url: str) -> str:
    return re.sub(r'^https?://(www\.)?', '', url.strip().lower()).rstrip("/")


def model_number_from_title(product_title: Optional[str]) -> Optional[str]:
    """Leading part-number run of the title (letters, digits, hyphens and inner dots)."""
    if not product_title:
        return None
    match = MODEL_NUMBER_PATTERN.match(product_title.strip())
    if not match:
        return None
    model_number = match.group(1)
    # Titles that start with a brand name ("Mean Well ...") carry no model number
    if not any(ch.isdigit() for ch in model_number):
        return None
    return model_number


def product_url(model_number: str) -> str:
    # Dots in part numbers become hyphens in page slugs (LRS-50-3.3 -> lrs-50-3-3)
    slug = model_number.lower().replace(".", "-")
    return f"{SITE_BASE_URL}/{slug}.html"


def build_entities(datasheet_url: Optional[str], product_title: Optional[str]) -> List[Entity]:
    entities = [Entity("rfq", "RFQ Form", RFQ_FORM_URL, re.compile(r"\bRFQ Form\b", re.IGNORECASE))]
    if datasheet_url:
        entities.append(Entity("datasheet", "datasheet", datasheet_url, re.compile(r"\bdatasheet\b", re.IGNORECASE)))
    model_number = model_number_from_title(product_title)
    if model_number:
        pattern = re.compile(
            r"(?<![\w.-])" + re.escape(model_number) + r"(?![\w-]|\.\w)", re.IGNORECASE
        )
        entities.append(Entity("product", model_number, product_url(model_number), pattern))
    return entities


def _is_disallowed(link: Link) -> bool:
    return link.label.strip().lower() in DISALLOWED_LINK_LABELS


# --- Stages ---

def link_raw_urls(text: str, context: PostProcessContext) -> str:
    """Stage 1: wrap bare http(s) URLs in links."""
    def on_plain(plain: str) -> List[Segment]:
        out: List[Segment] = []
        pos = 0
        for match in RAW_URL_PATTERN.finditer(plain):
            url = match.group(0).rstrip(".,;:!?")
            out.append(plain[pos:match.start()])
            out.append(Link(sniff_label(url), url))
            pos = match.start() + len(url)
        out.append(plain[pos:])
        return out

    return _map_segments(text, on_plain, lambda link: link)


def repair_links(text: str, context: PostProcessContext) -> str:
    """Stage 2: demote links with a disallowed label or a target that is not a full URL."""
    def on_link(link: Link) -> Segment:
        label, target = link.label, link.target
        if is_qualified_url(label):
            # Visible text is itself a URL: trust it over a broken target
            if not is_qualified_url(target) and target != DATASHEET_PLACEHOLDER:
                target = label
            label = sniff_label(target)
        if _is_disallowed(Link(label, target)):
            return label
        if not is_qualified_url(target) and target != DATASHEET_PLACEHOLDER:
            return label
        if not label:
            label = sniff_label(target)
        return Link(label, target)

    return _map_segments(text, lambda plain: [plain], on_link)


def substitute_placeholders(text: str, context: PostProcessContext) -> str:
    """Stage 3: resolve the datasheet placeholder and apply phrase normalization."""
    def normalize(value: str) -> str:
        for pattern, repl in COMPILED_SUBSTITUTIONS:
            value = pattern.sub(repl, value)
        return value

    def on_plain(plain: str) -> List[Segment]:
        out: List[Segment] = []
        parts = plain.split(DATASHEET_PLACEHOLDER)
        for i, part in enumerate(parts):
            if i:
                out.append(Link("datasheet", context.datasheet_url) if context.datasheet_url else "datasheet")
            out.append(normalize(part))
        return out

    def on_link(link: Link) -> Segment:
        label = normalize(link.label)
        if link.target == DATASHEET_PLACEHOLDER:
            return Link(label, context.datasheet_url) if context.datasheet_url else label
        return Link(label, link.target)

    return _map_segments(text, on_plain, on_link)


def link_entities(text: str, context: PostProcessContext) -> str:
    """Stage 4: link the first mention of each entity, leave later mentions as plain text."""
    if not context.entities:
        return text

    by_target = {normalize_url(entity.url): entity for entity in context.entities}
    linked = set()
    result: List[Segment] = []

    def on_link(link: Link) -> None:
        entity = by_target.get(normalize_url(link.target))
        if entity is None:
            result.append(link)
            return
        if entity.key not in linked:
            linked.add(entity.key)
            result.append(link)
            return
        label = entity.name if is_qualified_url(link.label) else link.label
        if _echoes_previous_link(result, entity, label):
            # "Datasheet: <datasheet link>" keeps only the first link
            result.pop()
            return
        result.append(label)

    def on_plain(plain: str) -> List[Segment]:
        out: List[Segment] = []
        pos = 0
        while True:
            # Earliest mention of an entity that has not been linked yet
            best = None
            for entity in context.entities:
                if entity.key in linked:
                    continue
                match = entity.pattern.search(plain, pos)
                if match and (best is None or match.start() < best[1].start()):
                    best = (entity, match)
            if best is None:
                break
            entity, match = best
            linked.add(entity.key)
            out.append(plain[pos:match.start()])
            out.append(Link(match.group(0), entity.url))
            pos = match.end()
        out.append(plain[pos:])
        return out

    for seg in parse_segments(text):
        if isinstance(seg, Link):
            on_link(seg)
        else:
            result.extend(part for part in on_plain(seg) if part)
    return render_segments(result)


def _echoes_previous_link(result: List[Segment], entity: Entity, label: str) -> bool:
    """True if result ends with a link to entity and a separator, and label repeats it."""
    if len(result) < 2 or not isinstance(result[-1], str) or not SEPARATOR_PATTERN.match(result[-1]):
        return False
    previous = result[-2]
    if not isinstance(previous, Link) or normalize_url(previous.target) != normalize_url(entity.url):
        return False
    return label.strip().lower() in (previous.label.lower(), entity.name.lower())


def cleanup_markup(text: str, context: PostProcessContext) -> str:
    """Stage 5: unwrap empty or stray anchors and sweep links that are still invalid."""
    def on_link(link: Link) -> Segment:
        if not link.target or not is_qualified_url(link.target) or _is_disallowed(link):
            return link.label
        return link

    return _map_segments(text, lambda plain: [STRAY_ANCHOR_PATTERN.sub("", plain)], on_link)


STAGES = [
    link_raw_urls,
    repair_links,
    substitute_placeholders,
    link_entities,
    cleanup_markup,
]


def process_answer(answer: str, datasheet_url: Optional[str] = None, product_title: Optional[str] = None) -> str:
    """Apply every post-processing stage in order. Never raises."""
    if not answer:
        return ""

    if datasheet_url and not is_qualified_url(datasheet_url.strip()):
        datasheet_url = None
    elif datasheet_url:
        datasheet_url = datasheet_url.strip()

    context = PostProcessContext(
        datasheet_url=datasheet_url,
        entities=build_entities(datasheet_url, product_title),
    )

    for stage in STAGES:
        try:
            answer = stage(answer, context)
        except Exception:
            logger.exception(f"Post-processing stage {stage.__name__} failed, skipping it")

    return answer.strip()
