import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from ..config.settings import ConversionSettings, MethodSettings
from ..errors import MissingParameterConfig
from ..generator.payloads import PayloadSynthesizer
from ..ir.models import APISpec, Endpoint, SecurityRequirement
from ..ir.plan import BODILESS_METHODS, RequestBatch, RequestCookie, ResolvedRequest
from ..security.applier import SecuritySchemeApplier
from ..siege.run_config import RunConfiguration
from .bodies import PayloadResolver
from .parameters import resolve_parameters
from .servers import join_url, resolve_base_url

logger = logging.getLogger(__name__)

# Fixed visiting order; TRACE is never resolved
METHOD_ORDER = ("get", "post", "delete", "patch", "put", "head", "options")

_PLACEHOLDER = re.compile(r"\{([^{}]+)\}")


@dataclass
class ConversionPlan:
    requests: RequestBatch
    run_config: RunConfiguration


class ConversionEngine:
    """
    Walks every operation of a document and resolves it into concrete
    requests, then applies the document's security requirements.

    Paths are visited in lexicographic order and methods in METHOD_ORDER so
    that the same inputs always produce the same plan.
    """

    def __init__(self, spec: APISpec, settings: ConversionSettings):
        self.spec = spec
        self.settings = settings
        self.payloads = PayloadResolver(PayloadSynthesizer(spec.components))
        self._document_base_url: Optional[str] = None

    def run(self) -> ConversionPlan:
        requests: RequestBatch = []
        groups: List[Tuple[Sequence[SecurityRequirement], List[ResolvedRequest]]] = []

        for path in self.spec.paths:
            operations = self.spec.operations(path)
            # Every path needs a settings block, even one with only deprecated operations
            self.settings.path_settings(path)

            for method in METHOD_ORDER:
                endpoint = operations.get(method)
                if endpoint is None:
                    continue
                if endpoint.deprecated:
                    logger.debug(f"Skipping deprecated operation {endpoint.id}")
                    continue

                resolved = self._process_endpoint(endpoint, self.settings.method_settings(path, method))
                requests.extend(resolved)
                groups.append((self._requirements(endpoint), resolved))

            trace = operations.get("trace")
            if trace is not None and not trace.deprecated:
                logger.warning(
                    f"TRACE operations are unsupported by Siege; your tests will be incomplete. "
                    f"Skipping TRACE for {path}"
                )

        if not groups:
            logger.warning("The document declares no operations; the plan is empty")

        run_config = self._new_run_config()
        applier = SecuritySchemeApplier(self.spec.security_schemes, self.settings.auth, run_config)
        applier.apply_document(self.spec.security)
        for requirements, resolved in groups:
            applier.apply(requirements, resolved)

        run_config.get_method = "GET"
        logger.info(f"Resolved {len(requests)} request(s) from {len(groups)} operation(s)")
        return ConversionPlan(requests=requests, run_config=run_config)

    def _requirements(self, endpoint: Endpoint) -> Sequence[SecurityRequirement]:
        if endpoint.security is not None:
            return endpoint.security
        return self.spec.security

    def _new_run_config(self) -> RunConfiguration:
        siege = self.settings.siege
        run_config = RunConfiguration(variables=dict(siege.variables))
        if siege.concurrent is not None:
            run_config.concurrent = siege.concurrent
        if siege.reps is not None:
            run_config.reps = siege.reps
        if siege.time is not None:
            run_config.duration = siege.time
        if siege.delay is not None:
            run_config.delay = siege.delay
        return run_config

    def _base_url(self, endpoint: Endpoint) -> str:
        if endpoint.servers:
            return resolve_base_url(endpoint.servers, self.settings.server)
        if self._document_base_url is None:
            self._document_base_url = resolve_base_url(self.spec.servers, self.settings.server)
        return self._document_base_url

    def _process_endpoint(self, endpoint: Endpoint, method_settings: MethodSettings) -> List[ResolvedRequest]:
        method = endpoint.method.lower()
        logger.debug(f"Resolving {endpoint.id}")

        params = resolve_parameters(method, endpoint.path, endpoint.parameters, method_settings.params)
        leftover = _PLACEHOLDER.search(params.path)
        if leftover:
            raise MissingParameterConfig(
                f"Path parameter {leftover.group(1)} in {endpoint.id} has no value\n"
                f"\tNeed paths.{endpoint.path}.{method}.params.{leftover.group(1)}"
            )

        url = join_url(self._base_url(endpoint), params.path)

        if endpoint.method.upper() in BODILESS_METHODS:
            variants = [None]
        else:
            variants = self.payloads.resolve(method, endpoint.path, endpoint.request_body, method_settings.payloads)

        resolved = []
        for variant in variants:
            resolved.append(ResolvedRequest(
                method=endpoint.method.upper(),
                base_url=url,
                query=list(params.query),
                payload=variant.payload if variant else "",
                media_type=variant.media_type if variant else "",
                cookies=[RequestCookie(c.name, c.value, path=url) for c in params.cookies],
                endpoint_id=endpoint.id,
            ))
        return resolved


def convert(spec: APISpec, settings: ConversionSettings) -> ConversionPlan:
    return ConversionEngine(spec, settings).run()
