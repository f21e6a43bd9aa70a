"""
spacy_source.py

Adapter from an already-parsed spaCy ``Doc`` to a :class:`TaggedDocument`.

spaCy does the tokenization, tagging and dependency parsing; this module
only reshapes its output into the token stream and dependency links the
keyword pipeline consumes:

- word identity = lower-cased lemma + language (``"network_en"``), so every
  inflection of a word maps to one graph node;
- POS = fine-grained Penn tag (``token.tag_``), which is what the admitted
  POS set speaks;
- positions = character offsets; sentence index from ``doc.sents``;
- ``compound`` / ``amod`` arcs become dependency links.

Punctuation and whitespace tokens are dropped.

Quick usage
-----------
    from textrankminer.spacy_source import SpacyDocumentSource

    source = SpacyDocumentSource(model_name="en_core_web_sm")
    document = source("Graph-based ranking models extract keywords.", document_id=1)
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Hashable, List, Optional

from .document import TaggedDocument
from .tokens import LANGUAGE_DELIMITER, MERGE_RELATIONS, DependencyLink, Token, make_tag_key


def _sentences(doc: Any) -> List[Any]:
    try:
        return list(doc.sents)
    except ValueError:
        # No sentence boundaries set (no parser/senter in the pipeline).
        return [doc]


def _word_value(token: Any, use_lemma: bool) -> str:
    raw = token.lemma_ if use_lemma and token.lemma_ else token.text
    # '_' is the keyword-id language delimiter.
    return raw.strip().lower().replace(LANGUAGE_DELIMITER, "-")


def tagged_document_from_spacy(
    doc: Any,
    document_id: Optional[Hashable] = None,
    use_lemma: bool = True,
) -> TaggedDocument:
    """
    Convert a parsed spaCy ``Doc`` into a :class:`TaggedDocument`.

    Parameters
    ----------
    doc:
        Output of ``nlp(text)``; needs a tagger and, for phrase merging,
        a dependency parser.
    document_id:
        Identifier carried by the document (handed to keyword sinks).
    use_lemma:
        If True (default), word identity and surface form use the lemma;
        otherwise the raw token text.
    """
    language = (getattr(doc, "lang_", "") or "en").replace(LANGUAGE_DELIMITER, "-")

    tokens_by_i: Dict[int, Token] = {}
    for sent_index, sent in enumerate(_sentences(doc)):
        for tok in sent:
            if tok.is_punct or tok.is_space:
                continue
            value = _word_value(tok, use_lemma)
            if not value:
                continue
            tokens_by_i[tok.i] = Token(
                id=make_tag_key(value, language),
                surface_form=value,
                start_position=tok.idx,
                end_position=tok.idx + len(tok.text),
                language=language,
                parts_of_speech=frozenset({tok.tag_}) if tok.tag_ else frozenset(),
                sentence_index=sent_index,
            )

    links: List[DependencyLink] = []
    for i, token in tokens_by_i.items():
        tok = doc[i]
        relation = (tok.dep_ or "").lower()
        if relation not in MERGE_RELATIONS:
            continue
        head = tokens_by_i.get(tok.head.i)
        if head is None or tok.head.i == i:
            continue
        links.append(DependencyLink(governor=head, dependent=token, relation=relation))

    return TaggedDocument(tokens_by_i.values(), links, document_id=document_id)


def load_spacy_model(
    model_name: str = "en_core_web_sm",
    log_fn: Optional[Callable[[str], None]] = None,
):
    """
    Load a spaCy model, downloading it on-the-fly if necessary.

    Users only need ``spacy`` installed; the language model is fetched the
    first time it is used.
    """
    import subprocess
    import sys

    log = log_fn or print
    try:
        import spacy

        return spacy.load(model_name)
    except OSError:
        # Model not downloaded yet → auto-download.
        log(f"[textrankminer] spaCy model '{model_name}' not found. Downloading…")
        subprocess.run([sys.executable, "-m", "spacy", "download", model_name], check=True)
        import spacy  # re-import after download

        return spacy.load(model_name)
    except ImportError as e:  # spaCy not installed
        raise ImportError(
            "spaCy is required for SpacyDocumentSource. Install with 'pip install spacy'."
        ) from e


class SpacyDocumentSource:
    """
    Parse raw text with spaCy and return :class:`TaggedDocument` objects.

    Parameters
    ----------
    nlp:
        A loaded spaCy ``Language``. If omitted, ``model_name`` is loaded
        lazily via :func:`load_spacy_model`.
    model_name:
        spaCy model used when ``nlp`` is not given.
    use_lemma:
        See :func:`tagged_document_from_spacy`.
    log_fn:
        Optional logging callback (used for model download messages).
    """

    def __init__(
        self,
        nlp: Optional[Any] = None,
        model_name: str = "en_core_web_sm",
        use_lemma: bool = True,
        log_fn: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.model_name = model_name
        self.use_lemma = use_lemma
        self.log_fn = log_fn
        self._nlp = nlp

    @property
    def nlp(self):
        if self._nlp is None:
            self._nlp = load_spacy_model(self.model_name, log_fn=self.log_fn)
        return self._nlp

    def __call__(self, text: str, document_id: Optional[Hashable] = None) -> TaggedDocument:
        return tagged_document_from_spacy(
            self.nlp(text), document_id=document_id, use_lemma=self.use_lemma
        )
