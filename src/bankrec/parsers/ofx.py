"""OFX/QFX statement parser.

Handles both SGML (no closing tags on leaf elements, ``OFXHEADER:100``) and
XML flavours. Transactions are located through ``<STMTTRN>`` blocks and leaf
values are extracted with regular expressions rather than an XML parser, so
the same code covers both.
"""

from __future__ import annotations

import html
import logging
import re
from typing import Optional

from bankrec.domain.entities import ParseResult, SkippedRow, StagedRecord
from bankrec.domain.errors import FileError
from bankrec.domain.parse_config import OfxConfig
from bankrec.utils.amount_parser import parse_amount
from bankrec.utils.date_parser import parse_ofx_date

from .base import BaseParser, build_record, decode

logger = logging.getLogger(__name__)

# From <STMTTRN> to </STMTTRN>, or to the next <STMTTRN> / </BANKTRANLIST> /
# end of file for SGML files that omit the closing tag.
_BLOCK_RE = re.compile(
    r"<STMTTRN>(.*?)(?=</STMTTRN>|<STMTTRN>|</BANKTRANLIST>|\Z)", re.IGNORECASE | re.DOTALL
)
_OFX_MARKER_RE = re.compile(r"<OFX>|OFXHEADER", re.IGNORECASE)


class OfxParser(BaseParser):
    """Parse OFX and Quicken QFX exports."""

    def __init__(self, config: OfxConfig):
        self.config = config

    def parse(self, raw: bytes) -> ParseResult:
        content = decode(raw, self.config.encoding, errors="replace")
        if not _OFX_MARKER_RE.search(content):
            raise FileError("File is not an OFX/QFX document")

        records: list[StagedRecord] = []
        skipped: list[SkippedRow] = []
        for index, block in enumerate(_BLOCK_RE.findall(content), start=1):
            try:
                records.append(self._parse_block(index, block))
            except ValueError as e:
                logger.debug("Skipping STMTTRN block %d: %s", index, e)
                skipped.append(SkippedRow(row_index=index, reason=str(e)))

        return ParseResult(records=records, skipped=skipped)

    def _parse_block(self, index: int, block: str) -> StagedRecord:
        dtposted = self._extract_tag(block, "DTPOSTED")
        if not dtposted:
            raise ValueError("Missing DTPOSTED")
        txn_date = parse_ofx_date(dtposted)

        trnamt = self._extract_tag(block, "TRNAMT")
        if not trnamt:
            raise ValueError("Missing TRNAMT")
        # Some banks write TRNAMT with a decimal comma
        separator = "," if "," in trnamt and "." not in trnamt else "."
        amount = parse_amount(trnamt, separator, self.config.invert_amounts)

        description = self._extract_tag(block, "NAME") or self._extract_tag(block, "MEMO") or ""

        value_date = None
        dtavail = self._extract_tag(block, "DTAVAIL")
        if dtavail:
            try:
                value_date = parse_ofx_date(dtavail)
            except ValueError:
                value_date = None

        return build_record(
            index,
            txn_date,
            amount,
            description,
            value_date=value_date,
            reference=self._extract_tag(block, "FITID"),
        )

    @staticmethod
    def _extract_tag(block: str, tag: str) -> Optional[str]:
        """Extract the value of a leaf tag.

        Handles both:
            <TAG>value          (SGML, no closing tag)
            <TAG>value</TAG>    (XML)
        """
        match = re.search(rf"<{tag}>([^<\r\n]*)", block, re.IGNORECASE)
        if match:
            value = html.unescape(match.group(1)).strip()
            return value or None
        return None
