# src/colonrecord/text_decoding.py

from __future__ import annotations

import logging
from typing import Optional, Sequence, Tuple

import chardet

_log = logging.getLogger("colonrecord.decoding")

# chardet の推定が外れたときに順に試すエンコーディング
DEFAULT_CANDIDATES: Tuple[str, ...] = ("utf-8-sig", "utf-8", "cp932", "euc_jp", "latin-1")

# これ未満の confidence なら chardet の推定は使わない
MIN_CONFIDENCE = 0.5


def detect_encoding(raw: bytes) -> Optional[str]:
    """chardet でエンコーディングを推定する。自信が無ければ None。"""
    result = chardet.detect(raw)
    encoding = result.get("encoding")
    confidence = result.get("confidence") or 0.0
    if encoding and confidence >= MIN_CONFIDENCE:
        return encoding.lower()
    return None


def _score(text: str) -> int:
    """文字化けっぽさの減点 (0 が最良)。"""
    num_replacement = text.count("\ufffd")
    num_ctrl = sum(
        1
        for ch in text
        if (ord(ch) < 0x20 and ch not in "\r\n\t") or 0x7F <= ord(ch) <= 0x9F
    )
    return -(num_replacement * 10 + num_ctrl * 2)


def decode_bytes(
    raw: bytes,
    candidates: Sequence[str] = DEFAULT_CANDIDATES,
) -> Tuple[str, str]:
    """
    バイト列をテキスト化し (テキスト, 採用したエンコーディング) を返す。

    - chardet の推定を最初に、続いて candidates を strict に試す
    - デコードできたものの中でスコアが最も良いものを採用 (同点なら先勝ち)
    - どれも通らなければ utf-8 で置換文字入りのまま読む
    """
    guessed = detect_encoding(raw)
    order = [guessed] if guessed else []
    order += [enc for enc in candidates if enc != guessed]

    best_text: Optional[str] = None
    best_encoding: Optional[str] = None
    best_score = float("-inf")

    for enc in order:
        try:
            text = raw.decode(enc)
        except (UnicodeDecodeError, LookupError):
            continue

        score = _score(text)
        if score > best_score:
            best_score = score
            best_text = text
            best_encoding = enc

    if best_text is None or best_encoding is None:
        best_encoding = "utf-8"
        best_text = raw.decode(best_encoding, errors="replace")

    _log.debug("decoded %d bytes as %s (chardet guess: %s)", len(raw), best_encoding, guessed)
    return best_text, best_encoding
