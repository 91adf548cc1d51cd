from __future__ import annotations

import random
from typing import Optional

from flask import Flask

from sitescan_web.adapters.fetch_requests import RequestsDocumentFetcher, forwarding_from_prefix
from sitescan_web.config.ini_config import AppSettings, IniConfig
from sitescan_web.config.logging_setup import setup_logging
from sitescan_web.repositories.state_repository import JsonStateRepository
from sitescan_web.services.analysis_tools import AnalysisTools
from sitescan_web.services.chat_service import ChatService
from sitescan_web.services.intent_classifier import KeywordIntentClassifier
from sitescan_web.services.page_analyzer import PageAnalyzer
from sitescan_web.services.page_scanner import PageScanner
from sitescan_web.services.scan_session import ScanSession
from sitescan_web.services.tool_orchestrator import AutoApprovePolicy, ManualApprovalPolicy, ToolOrchestrator
from sitescan_web.services.url_normalization import GuessComUrlNormalizer
from sitescan_web.web.routes import create_blueprint


def create_app(settings: Optional[AppSettings] = None, *, fetcher=None, rng: Optional[random.Random] = None) -> Flask:
    """
    Composition root. Settings come from the INI file unless given;
    tests pass their own settings and a fake fetcher.
    """
    if settings is None:
        settings = IniConfig.from_env_or_default().load_settings()

    logger = setup_logging(settings.log_level, settings.log_file)

    url_norm = GuessComUrlNormalizer(
        default_scheme=settings.default_scheme,
        guess_com_if_no_dot=settings.guess_com_if_no_dot,
        no_guess_hosts=settings.no_guess_hosts,
    )

    if fetcher is None:
        fetcher = RequestsDocumentFetcher(
            max_attempts=settings.max_attempts,
            backoff_seconds=settings.backoff_seconds,
            timeout_seconds=settings.timeout_seconds,
            forwarding=forwarding_from_prefix(settings.forwarding_prefix),
            rng=rng,
        )

    scanner = PageScanner(fetcher=fetcher, analyzer=PageAnalyzer(max_links=settings.max_links))

    state_repo = JsonStateRepository(settings.state_file)
    session = ScanSession.from_snapshot(
        state_repo.load(),
        queue_same_site_links=settings.queue_same_site_links,
    )

    tools = AnalysisTools(session, scanner, fetcher)
    policy = ManualApprovalPolicy() if settings.approval_mode == "manual" else AutoApprovePolicy()
    orchestrator = ToolOrchestrator(tools.definitions(), policy=policy)

    chat_service = ChatService(
        session=session,
        scanner=scanner,
        classifier=KeywordIntentClassifier(),
        orchestrator=orchestrator,
        url_normalizer=url_norm,
        rng=rng,
    )

    app = Flask(__name__)
    app.register_blueprint(create_blueprint(chat_service, session, orchestrator, state_repo))

    app.config["HOST"] = settings.flask_host
    app.config["PORT"] = settings.flask_port
    app.config["DEBUG"] = settings.flask_debug
    app.config["SETTINGS"] = settings

    logger.info(
        "sitescan_web ready: %d page(s), %d asset(s) restored from %s; approval=%s",
        len(session.scan_results), len(session.assets), settings.state_file, settings.approval_mode,
    )
    return app
