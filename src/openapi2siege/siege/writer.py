import copy
import logging
import os
from dataclasses import dataclass
from typing import List, Optional

from ..config.settings import SiegeSettings
from ..resolver.engine import ConversionPlan
from .cookies import build_cookie_jar
from .url_list import media_type_prefix, media_types, prefix_filename, render

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WrittenConfig:
    config_path: str
    urls_path: str
    media_type: Optional[str] = None

    @property
    def command(self) -> str:
        if self.media_type:
            return f"siege -R {self.config_path} -T '{self.media_type}'"
        return f"siege -R {self.config_path}"


class PlanWriter:
    """
    Writes a finished plan to disk: one URLs file and one Siege config per
    media type, plus the cookie jar.

    Filenames are prefixed with the media type (`json.urls.txt`) only when the
    plan uses more than one.
    """

    def __init__(self, siege: SiegeSettings, dry_run: bool = False):
        self.siege = siege
        self.dry_run = dry_run

    def write(self, plan: ConversionPlan) -> List[WrittenConfig]:
        types = media_types(plan.requests)
        targets: List[Optional[str]] = list(types) if len(types) > 1 else [types[0] if types else None]

        written = []
        for media_type in targets:
            urls_path = self.siege.urls
            config_path = self.siege.config
            if len(targets) > 1:
                prefix = media_type_prefix(media_type)
                urls_path = prefix_filename(prefix, urls_path)
                config_path = prefix_filename(prefix, config_path)

            run_config = copy.deepcopy(plan.run_config)
            run_config.url_file = urls_path

            self._write_file(urls_path, render(plan.requests, media_type if len(targets) > 1 else None))
            self._write_file(config_path, run_config.to_text())
            written.append(WrittenConfig(config_path=config_path, urls_path=urls_path, media_type=media_type))

        self._save_cookies(plan)
        return written

    def _write_file(self, path: str, content: str) -> None:
        if self.dry_run:
            logger.info(f"Dry run: Would write to {path}")
            return

        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(content)
        logger.info(f"Wrote {path}")

    def _save_cookies(self, plan: ConversionPlan) -> None:
        jar = build_cookie_jar(plan.requests, self.siege.cookies)
        if self.dry_run:
            logger.info(f"Dry run: Would save {len(jar)} cookie(s) to {self.siege.cookies}")
            return

        directory = os.path.dirname(self.siege.cookies)
        if directory:
            os.makedirs(directory, exist_ok=True)
        jar.save(ignore_discard=True, ignore_expires=True)
        logger.info(f"Wrote {self.siege.cookies}")
