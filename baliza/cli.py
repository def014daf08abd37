"""Interface de linha de comando para operar o Baliza."""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Sequence

from dotenv import load_dotenv
from pymongo.errors import PyMongoError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from baliza.container import BalizaContainer, build_container
from baliza.correction import CorrectionIssue, DuplicateGroup
from baliza.domain.entities import VenueRecord, VenueReference
from baliza.domain.errors import AuthFailure
from baliza.infrastructure.database import MongoClientFactory
from baliza.infrastructure.repositories import ensure_venue_indexes

_SEVERITY_STYLE = {"high": "red", "medium": "yellow"}


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="baliza", description="Baliza - resolução e correção de locais"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    resolve = subparsers.add_parser(
        "resolve", help="Resolve uma referência de local para o registro canônico"
    )
    resolve.add_argument("name", help="Nome do local como recebido")
    resolve.add_argument("--city", default=None, help="Cidade do local")
    resolve.add_argument("--country", default=None, help="País do local")
    resolve.add_argument(
        "--external-id", type=int, default=None, help="Identificador numérico do provedor"
    )

    scan = subparsers.add_parser(
        "scan", help="Lista locais com coordenadas fora dos limites esperados"
    )
    scan.add_argument(
        "--json", action="store_true", help="Exibe o relatório completo em JSON"
    )

    fix = subparsers.add_parser(
        "fix", help="Corrige coordenadas inválidas (simulação sem --apply)"
    )
    fix.add_argument(
        "--apply", action="store_true", help="Persiste as correções no armazenamento"
    )
    fix.add_argument(
        "--with-duplicates",
        action="store_true",
        help="Também funde duplicatas após corrigir as coordenadas",
    )
    fix.add_argument(
        "--metrics-file", type=Path, help="Exporta o resumo final para um arquivo JSON"
    )

    fix_one = subparsers.add_parser(
        "fix-one", help="Corrige um único local pelo identificador ou nome"
    )
    fix_one.add_argument(
        "target", help="Identificador interno, identificador externo ou nome do local"
    )
    fix_one.add_argument("--city", default=None, help="Cidade usada na busca por nome")
    fix_one.add_argument(
        "--apply", action="store_true", help="Persiste a correção no armazenamento"
    )

    dedupe = subparsers.add_parser(
        "dedupe", help="Agrupa locais duplicados e aplica a política de fusão"
    )
    dedupe.add_argument(
        "--apply", action="store_true", help="Remove as duplicatas de fato"
    )

    subparsers.add_parser(
        "ensure-indexes", help="Cria os índices da coleção de locais no MongoDB"
    )
    subparsers.add_parser("serve", help="Sobe a API HTTP com o Uvicorn")

    # Nível de log por subcomando (também lê BALIZA_LOG_LEVEL)
    for sp in subparsers.choices.values():
        sp.add_argument(
            "--log-level",
            default=None,
            help="Nível de log: DEBUG, INFO, WARNING, ERROR (padrão INFO)",
        )

    return parser.parse_args(argv)


def configure_logging(console: Console, level_name: str | None) -> None:
    level_name = level_name or os.getenv("BALIZA_LOG_LEVEL", "INFO")
    handler = RichHandler(console=console, markup=False, rich_tracebacks=True)
    logging.basicConfig(
        level=getattr(logging, str(level_name).upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )


def main(
    argv: Sequence[str] | None = None,
    *,
    container: BalizaContainer | None = None,
    console: Console | None = None,
) -> int:
    load_dotenv()
    args = parse_args(argv)
    console = console or Console()
    configure_logging(console, getattr(args, "log_level", None))
    logger = logging.getLogger("baliza.cli")

    if args.command == "serve":
        from baliza.api import run

        run()
        return 0

    if args.command == "ensure-indexes":
        factory = MongoClientFactory()
        try:
            factory.ping()
            ensure_venue_indexes(factory.get_venues_collection())
        except PyMongoError as exc:
            logger.error("Falha ao criar índices no MongoDB: %s", exc)
            return 1
        finally:
            factory.close()
        console.print(
            f"[green]Índices garantidos em '{factory.settings.venues_collection}'.[/green]"
        )
        return 0

    container = container or build_container()
    try:
        return _dispatch(args, container, console, logger)
    except AuthFailure as exc:
        console.print(f"[red]Geocodificador recusou as credenciais: {exc}[/red]")
        return 2
    finally:
        container.close()


def _dispatch(
    args: argparse.Namespace,
    container: BalizaContainer,
    console: Console,
    logger: logging.Logger,
) -> int:
    if args.command == "resolve":
        reference = VenueReference(
            name=args.name,
            city=args.city,
            country=args.country,
            external_id=args.external_id,
        )
        with console.status(f"Resolvendo '{reference.describe()}'...", spinner="dots"):
            result = container.orchestrator.resolve(reference)
        payload: dict[str, Any] = {
            "state": result.state.value,
            "strategy": result.strategy,
            "created": result.created,
            "updated": result.updated,
            "transitions": [state.value for state in result.transitions],
            "venue": _venue_payload(result.venue) if result.venue else None,
        }
        if not result.resolved:
            payload["reason"] = result.reason.value if result.reason else None
            payload["error"] = str(result.error) if result.error else None
        console.print_json(data=payload)
        return 0 if result.resolved else 1

    if args.command == "scan":
        summary = container.engine.scan_summary()
        if args.json:
            console.print_json(data=summary.to_mapping())
        elif summary.issues:
            console.print(_issues_table(summary.issues))
        console.print(
            f"{summary.scanned} local(is) verificados, {len(summary.issues)} problema(s) "
            f"em {summary.venues_with_issues} local(is)."
        )
        return 0

    if args.command == "fix":
        dry_run = not args.apply
        handle = container.job.start_background(
            dry_run=dry_run, fix_duplicates=args.with_duplicates
        )
        label = "Simulando correções..." if dry_run else "Corrigindo coordenadas..."
        with console.status(label, spinner="dots"):
            try:
                result = handle.join()
            except KeyboardInterrupt:
                logger.warning("Cancelamento solicitado; aguardando o local atual terminar")
                handle.cancel()
                result = handle.join()
        if result is None:
            console.print("[red]O job de correção não produziu resultado.[/red]")
            return 1
        console.print_json(data=result.to_mapping())
        if args.metrics_file:
            _write_metrics_file(args.metrics_file, result.to_summary())
            console.log(f"Métricas salvas em '{args.metrics_file}'.")
        if dry_run:
            console.print("[yellow]Simulação: nada foi gravado. Use --apply para persistir.[/yellow]")
        if result.errors:
            logger.warning("Job finalizado com %d erros", len(result.errors))
            return 1
        return 0

    if args.command == "fix-one":
        venue = _find_target(container, args.target, args.city)
        if venue is None:
            console.print(f"[red]Local '{args.target}' não encontrado.[/red]")
            return 1
        issues = container.engine.issues_for(venue)
        if not issues:
            if not venue.has_coordinates:
                console.print(
                    f"[yellow]{venue.describe()} não tem coordenadas; use 'baliza resolve'.[/yellow]"
                )
            else:
                console.print(f"[green]{venue.describe()} já tem coordenadas válidas.[/green]")
            return 0
        console.print(_issues_table(issues))
        issue = min(issues, key=lambda item: 0 if item.severity.value == "high" else 1)
        outcome = container.engine.apply(issue, dry_run=not args.apply)
        console.print_json(data=outcome.to_mapping())
        return 0 if outcome.corrected else 1

    if args.command == "dedupe":
        groups = container.engine.find_duplicates()
        if not groups:
            console.print("[green]Nenhum local duplicado encontrado.[/green]")
            return 0
        console.print(_groups_table(groups))
        report = container.engine.merge_duplicates(groups, dry_run=not args.apply)
        console.print_json(data=report.to_mapping())
        if not args.apply:
            console.print("[yellow]Simulação: nada foi removido. Use --apply para persistir.[/yellow]")
        return 1 if report.errors else 0

    raise ValueError(f"Comando desconhecido: {args.command}")


def _find_target(
    container: BalizaContainer, target: str, city: str | None
) -> VenueRecord | None:
    venue = container.repository.get(target)
    if venue is not None:
        return venue
    if target.isdigit():
        venue = container.matcher.find_by_external_id(int(target))
        if venue is not None:
            return venue
    return container.matcher.find_by_reference(target, city)


def _venue_payload(venue: VenueRecord) -> dict[str, Any]:
    return {
        "id": venue.id,
        "external_id": venue.external_id,
        "name": venue.name,
        "city": venue.city,
        "country": venue.country,
        "coordinates": venue.coordinates.to_geojson() if venue.coordinates else None,
    }


def _issues_table(issues: Sequence[CorrectionIssue]) -> Table:
    table = Table(title="Problemas de coordenadas")
    table.add_column("Local")
    table.add_column("Cidade")
    table.add_column("País")
    table.add_column("Coordenadas")
    table.add_column("Severidade")
    table.add_column("Motivo")
    for issue in issues:
        style = _SEVERITY_STYLE.get(issue.severity.value, "")
        table.add_row(
            issue.venue.name,
            issue.venue.city,
            issue.venue.country,
            str(issue.venue.coordinates),
            f"[{style}]{issue.severity.value}[/{style}]" if style else issue.severity.value,
            issue.reason,
        )
    return table


def _groups_table(groups: Sequence[DuplicateGroup]) -> Table:
    table = Table(title="Locais duplicados")
    table.add_column("Nome normalizado")
    table.add_column("Válidos", justify="right")
    table.add_column("Inválidos", justify="right")
    table.add_column("Sem coordenadas", justify="right")
    table.add_column("Ação")
    table.add_column("Motivo")
    for group in groups:
        table.add_row(
            group.normalized_name,
            str(len(group.valid)),
            str(len(group.invalid)),
            str(len(group.missing)),
            group.plan.action.value,
            group.plan.reason,
        )
    return table


def _write_metrics_file(path: Path, summary: dict[str, Any]) -> None:
    try:
        with path.open("w", encoding="utf-8") as stream:
            json.dump(summary, stream, ensure_ascii=False)
            stream.write("\n")
    except OSError as exc:
        logging.getLogger("baliza.cli").error(
            "Falha ao escrever métricas em %s: %s", path, exc
        )


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
