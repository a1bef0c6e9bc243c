import logging
from dataclasses import dataclass, field
from typing import List

from lxml import etree  # Using lxml for robust parsing and namespace handling

from sitemap_delta.errors import ParseError

logger = logging.getLogger(__name__)

# Parse result kinds
PLAIN_TEXT = "plain_text"
URLSET = "urlset"
SITEMAP_INDEX = "sitemapindex"
UNRECOGNIZED = "unrecognized"

# Namespace-agnostic paths: plenty of sitemaps in the wild omit the
# sitemaps.org namespace or use a prefixed one.
INDEX_LOC_XPATH = "./*[local-name()='sitemap']/*[local-name()='loc']"
URLSET_LOC_XPATH = "./*[local-name()='url']/*[local-name()='loc']"


@dataclass
class ParsedSitemap:
    """
    Tagged parse result.

    `locations` is always a list, whether the document held one entry or many.
    For SITEMAP_INDEX they are child sitemap URLs, otherwise page URLs.
    """
    kind: str
    locations: List[str] = field(default_factory=list)

    @property
    def is_index(self) -> bool:
        return self.kind == SITEMAP_INDEX


class SitemapParser:
    def __init__(self):
        logger.debug("SitemapParser initialized.")

    def parse_sitemap(self, content: str, sitemap_url: str = "") -> ParsedSitemap:
        """
        Parses a sitemap body.

        A body that does not start with '<' is treated as a plain-text sitemap
        (one URL per line). Anything else is parsed as XML and classified as a
        sitemap index, a URL set, or unrecognized.

        Args:
            content: The body of the sitemap as a string.
            sitemap_url: The URL from which this sitemap was fetched (for logging/context).

        Returns:
            A ParsedSitemap.

        Raises:
            ParseError: if the body looks like XML but cannot be parsed at all.
        """
        text = (content or "").lstrip("\ufeff").strip()

        if not text.startswith("<"):
            urls = self._extract_plain_text_urls(text)
            logger.info(f"Parsed {sitemap_url or 'sitemap'} as plain text: {len(urls)} URLs")
            return ParsedSitemap(PLAIN_TEXT, urls)

        try:
            # lxml requires bytes when the document carries an encoding declaration.
            # recover mode still accepts mildly malformed XML.
            parser = etree.XMLParser(recover=True, remove_blank_text=True, resolve_entities=False, no_network=True)
            root = etree.fromstring(text.encode("utf-8"), parser=parser)
        except (etree.ParseError, etree.ParserError) as e:
            raise ParseError(f"XML syntax error in sitemap {sitemap_url}: {e}") from e

        if root is None or not isinstance(root.tag, str):
            raise ParseError(f"No XML document element in sitemap {sitemap_url}")

        root_tag_name = etree.QName(root).localname

        if root_tag_name == SITEMAP_INDEX:
            locations = self._extract_locs(root, INDEX_LOC_XPATH)
            logger.info(f"Parsed {sitemap_url} as sitemap index: {len(locations)} child sitemaps")
            return ParsedSitemap(SITEMAP_INDEX, locations)

        if root_tag_name == URLSET:
            locations = self._extract_locs(root, URLSET_LOC_XPATH)
            logger.info(f"Parsed {sitemap_url} as URL set: {len(locations)} URLs")
            return ParsedSitemap(URLSET, locations)

        logger.warning(f"Unknown root element '{root_tag_name}' in sitemap from {sitemap_url}; ignoring it.")
        return ParsedSitemap(UNRECOGNIZED)

    def _extract_locs(self, root_element: etree._Element, xpath: str) -> List[str]:
        """Text of every matching <loc>, stripped; entries without text are skipped."""
        locations = []
        for loc_element in root_element.xpath(xpath):
            if loc_element.text and loc_element.text.strip():
                locations.append(loc_element.text.strip())
            else:
                logger.debug("Skipping entry with an empty <loc> tag.")
        return locations

    @staticmethod
    def _extract_plain_text_urls(text: str) -> List[str]:
        lines = (line.strip() for line in text.splitlines())
        return [line for line in lines if line.startswith("http")]
