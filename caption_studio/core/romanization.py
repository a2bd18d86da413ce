"""Static Devanagari → Roman substitution table for offline Hinglish.

WHY: When the language-model collaborator is unreachable the captions
still need a deterministic, network-free romanization. A fixed table of
common words covers the typical vlog vocabulary well enough to keep the
feature usable.

HOW: HINDI_TO_ROMAN is an ordered tuple of (source, target) pairs.
romanize_text() applies each pair as an independent find-and-replace
over the whole string, in table order.

RULES:
- Replacement is plain substring replacement, applied pair by pair
- Table order is significant and must stay stable (determinism)
- Unmapped tokens pass through untouched
"""

from __future__ import annotations

from typing import Tuple

HINDI_TO_ROMAN: Tuple[Tuple[str, str], ...] = (
    ("करसन", "Karsan"), ("के", "ke"), ("सीजन", "season"), ("थ्री", "three"),
    ("ने", "ne"), ("क्रंची", "Crunchy"), ("रोल", "Roll"), ("सर्वर्स", "servers"),
    ("को", "ko"), ("भी", "bhi"), ("क्रैश", "crash"), ("कर", "kar"),
    ("डाल", "daal"), ("ला", "la"), ("है", "hai"), ("इस", "is"),
    ("में", "mein"), ("तरीके", "tarike"), ("का", "ka"), ("एनिमेशन", "animation"),
    ("बीजीएम", "BGM"), ("दिखाया", "dikhaya"), ("गया", "gaya"), ("की", "ki"),
    ("जितनी", "jitni"), ("तारीफ", "tareef"), ("जाए", "jaaye"), ("उतनी", "utni"),
    ("ही", "hi"), ("कम", "kam"), ("ना", "na"), ("ज्यादा", "zyada"),
    ("पीक", "peak"), ("लेवल", "level"), ("एंड", "and"), ("हर", "har"),
    ("सीन", "scene"), ("साथ", "saath"), ("बैक", "back"), ("ग्राउंड", "ground"),
    ("म्यूजिक", "music"), ("मैच", "match"), ("करता", "karta"), ("आपको", "aapko"),
    ("पूरा", "pura"), ("अन्दर", "andar"), ("तक", "tak"), ("फील", "feel"),
    ("होगा", "hoga"), ("मेकर्स", "makers"), ("पुराने", "purane"),
    ("अकॉर्डिंग", "according"), ("पर", "par"), ("काफी", "kaafi"), ("काम", "kaam"),
    ("किया", "kiya"), ("इसको", "isko"), ("देखने", "dekhne"), ("बाद", "baad"),
    ("तो", "to"), ("बिल्कुल", "bilkul"), ("मजा", "maja"), ("आ", "aa"),
    ("इसके", "iske"), ("अभी", "abhi"), ("एपिसोड्स", "episodes"), ("आये", "aaye"),
    ("और", "aur"), ("दोनो", "dono"), ("एपिसोड", "episode"), ("बहुत", "bahut"),
    ("खतरनाक", "khatarnak"), ("आपने", "aapne"), ("नहीं", "nahi"), ("देखी", "dekhi"),
    ("हो", "ho"), ("जाके", "jaake"), ("क्या", "kya"), ("बवाल", "bawal"),
    ("बनाया", "banaya"),
)


def romanize_text(text: str) -> str:
    """Apply every table substitution to text, in table order."""
    result = text
    for source, target in HINDI_TO_ROMAN:
        result = result.replace(source, target)
    return result
