import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..errors import MissingPayloadConfig
from ..generator.payloads import PayloadSynthesizer, serialize_payload
from ..ir.models import MediaType, RequestBody, is_set

logger = logging.getLogger(__name__)

# An empty JSON string, sent when an optional body has nothing configured
EMPTY_PAYLOAD = '""'


@dataclass(frozen=True)
class PayloadVariant:
    payload: str
    media_type: str = ""


class PayloadResolver:
    def __init__(self, synthesizer: PayloadSynthesizer):
        self.synthesizer = synthesizer

    def resolve(
        self,
        method: str,
        path: str,
        request_body: Optional[RequestBody],
        configured: Dict[str, str],
    ) -> List[PayloadVariant]:
        """
        Resolves a request body into its payload variants.

        Media types are visited in document order. Within one media type the
        variants come in discovery order: configured value, example, examples,
        synthesized value.
        """
        variants: List[PayloadVariant] = []

        if request_body is not None:
            for media_type in request_body.content.values():
                found = self._resolve_media_type(method, path, media_type, request_body.required, configured)
                if request_body.required and not found:
                    raise MissingPayloadConfig(
                        f"Unconfigured payload for {media_type.name} in {method.upper()} {path}, "
                        f"and couldn't generate one\n"
                        f"\tNeed paths.{path}.{method.lower()}.payloads.{media_type.name}"
                    )
                variants.extend(found)

        if not variants:
            variants.append(PayloadVariant(payload=EMPTY_PAYLOAD))

        logger.debug(f"{len(variants)} payload variant(s) for {method.upper()} {path}")
        return variants

    def _resolve_media_type(
        self,
        method: str,
        path: str,
        media_type: MediaType,
        required: bool,
        configured: Dict[str, str],
    ) -> List[PayloadVariant]:
        name = media_type.name

        if name in configured:
            return [PayloadVariant(payload=configured[name], media_type=name)]
        if not required:
            return []

        found = []
        if is_set(media_type.example):
            found.append(PayloadVariant(serialize_payload(name, media_type.example), name))
        for example in media_type.examples:
            found.append(PayloadVariant(serialize_payload(name, example), name))

        if not found and media_type.schema is not None:
            logger.debug(f"Generating a payload for {name} in {method.upper()} {path}")
            value = self.synthesizer.generate(media_type.schema)
            if value is not None:
                found.append(PayloadVariant(serialize_payload(name, value), name))

        return found
