# faturamento/adapters/cli.py
"""
CLI do motor de faturamento (Typer).

Comandos principais:
- faturar                     -> processa rastreio + custos e mostra a fatura
- filtrar-mes <csv>           -> recorta um CSV pelo mês de referência
- contar-envios <csv>         -> conta as linhas do mês
- validar-custos <csv>...     -> aponta pedidos repetidos entre relatórios de custos
- margem categoria <tabela>   -> aplica uma margem a todos os itens de uma categoria
- margem templates <tabela>   -> aplica uma margem a todos os itens template
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from faturamento.adapters.tabela_loader import carregar_tabela_precos, exportar_tabela_precos
from faturamento.config import DEFAULTS, MODO_FALHAR
from faturamento.domain.erros import ErroFaturamento
from faturamento.domain.models import Cliente
from faturamento.usecases.conciliacao import parse_mes_referencia
from faturamento.usecases.processar_fatura import processar_fatura
from faturamento.usecases.relatorios import (
    contar_envios_no_mes,
    exportar_detalhes_csv,
    filtrar_csv_por_mes,
    validar_multiplos_csvs,
)
from faturamento.usecases.tabela_precos import atualizar_margem_categoria, atualizar_margem_templates


app = typer.Typer(help="Faturamento Logístico - CLI")
console = Console()


# -----------------------
# util
# -----------------------

def _brl(val: float) -> str:
    return f"{val:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")


def _ler(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def _primeiro_dia(mes: str) -> str:
    """'Outubro/2025' -> '01/10/2025'; vazio se o mês for inválido."""
    periodo = parse_mes_referencia(mes)
    if not periodo:
        return ""
    m, ano = periodo
    return f"01/{m:02d}/{ano:04d}"


def _erro(e: ErroFaturamento) -> None:
    console.print(Panel(e.message, title=f"Erro: {e.code}", border_style="red"))
    raise typer.Exit(code=1)


def _display_table(data: List[Dict[str, Any]], title: str = "Resultado") -> None:
    """Exibe uma lista de dicionários em tabela Rich (valores numéricos em pt-BR)."""
    if not data:
        console.print(Panel("Nenhum dado encontrado", title=title, border_style="yellow"))
        return

    table = Table(title=title, box=box.ROUNDED)
    columns = list(data[0].keys())
    for column in columns:
        if column.lower() in ("valor", "quantidade", "subtotal", "total"):
            table.add_column(column, justify="right")
        else:
            table.add_column(column)

    for row in data:
        values = []
        for col in columns:
            val = row.get(col, "")
            if isinstance(val, (int, float)) and not isinstance(val, bool):
                values.append(_brl(val))
            else:
                values.append(str(val))
        table.add_row(*values)
    console.print(table)


def _display_avisos(avisos: List[str]) -> None:
    if avisos:
        console.print(Panel("\n".join(f"- {a}" for a in avisos), title="Avisos", border_style="yellow"))


def _parse_posicoes(posicoes: List[str]) -> Dict[str, float]:
    out: Dict[str, float] = {}
    for p in posicoes:
        if "=" not in p:
            raise typer.BadParameter(f"Posição inválida: '{p}' (use tipo=quantidade, ex.: pallet=3)")
        tipo, qtd = p.split("=", 1)
        try:
            out[tipo.strip().lower().replace(" ", "_")] = float(qtd)
        except ValueError:
            raise typer.BadParameter(f"Quantidade inválida em '{p}'")
    return out


# -----------------------
# faturamento
# -----------------------

@app.command("faturar")
def cmd_faturar(
    tabela: Path = typer.Option(..., "--tabela", exists=True, dir_okay=False, help="Tabela de preços (.csv ou .xlsx)"),
    rastreio: Path = typer.Option(..., "--rastreio", exists=True, dir_okay=False, help="CSV do relatório de rastreio"),
    custos: List[Path] = typer.Option(..., "--custos", exists=True, dir_okay=False, help="CSV do relatório de custos (pode repetir)"),
    mes: str = typer.Option(..., "--mes", help="Mês de referência, ex.: Outubro/2025"),
    cliente_id: str = typer.Option("cliente", "--cliente", help="Identificador do cliente"),
    cliente_nome: str = typer.Option("", "--nome", help="Nome do cliente"),
    unidades: float = typer.Option(0, "--unidades", help="Unidades em estoque (armazenagem)"),
    posicao: List[str] = typer.Option([], "--posicao", help="Posição de armazenagem, ex.: pallet=3 (pode repetir)"),
    skus_entrada: float = typer.Option(0, "--skus-entrada", help="SKUs de entrada de material"),
    inicio_armazenagem: Optional[str] = typer.Option(
        None, "--inicio-armazenagem", help="Data das linhas de armazenagem (padrão: dia 1 do --mes)"
    ),
    custos_extras: float = typer.Option(0.0, "--custos-extras", help="Valor repassado ao total"),
    estrito: bool = typer.Option(False, "--estrito", help="Falha quando um custo não tem item na tabela"),
    exportar: Optional[str] = typer.Option(None, "--exportar", help="Grava as linhas da fatura neste CSV"),
):
    """Processa os relatórios do mês e mostra os totais da fatura."""
    config = replace(DEFAULTS, modo_sem_correspondencia=MODO_FALHAR) if estrito else DEFAULTS
    cliente = Cliente(
        id=cliente_id,
        nome=cliente_nome,
        unidades_em_estoque=unidades,
        posicoes=_parse_posicoes(posicao),
        skus_entrada_material=skus_entrada,
    )
    if not inicio_armazenagem:
        inicio_armazenagem = _primeiro_dia(mes)
    try:
        itens = carregar_tabela_precos(str(tabela))
        res = processar_fatura(
            itens,
            cliente,
            _ler(rastreio),
            [_ler(c) for c in custos] if len(custos) > 1 else _ler(custos[0]),
            mes,
            inicio_armazenagem,
            custos_extras=custos_extras,
            config=config,
        )
    except ErroFaturamento as e:
        _erro(e)
        return

    c = res.cobranca
    r = res.resumo
    _display_table([
        {"Grupo": "Envios", "Quantidade": r.quantidade_envios, "Valor": c.total_envio},
        {"Grupo": "Armazenagem", "Quantidade": "", "Valor": c.total_armazenagem},
        {"Grupo": "Custos logísticos", "Quantidade": "", "Valor": r.total_custos_logisticos},
        {"Grupo": "DIFAL", "Quantidade": r.quantidade_difal, "Valor": r.total_difal},
        {"Grupo": "Custos adicionais", "Quantidade": "", "Valor": c.total_custos_adicionais},
        {"Grupo": "Custos extras", "Quantidade": "", "Valor": c.total_custos_extras},
        {"Grupo": "TOTAL", "Quantidade": "", "Valor": c.valor_total},
    ], title=f"Fatura {c.mes_referencia} - {cliente_nome or cliente_id}")

    console.print(
        f"[dim]Pedidos conciliados: {r.total_pedidos_encontrados} | únicos: {r.total_pedidos_unicos} | "
        f"período: {res.periodo_detectado} | vencimento: {c.data_vencimento or 'N/A'} | "
        f"custo interno: R$ {_brl(c.custo_total)}[/dim]"
    )

    conc = res.conciliacao
    if conc.ids_rastreio_sem_match:
        console.print(f"[yellow]Pedidos do rastreio sem custo ({len(conc.ids_rastreio_sem_match)}):[/yellow] "
                      + ", ".join(conc.ids_rastreio_sem_match[:20]))
    if conc.ids_custo_sem_match:
        console.print(f"[dim]Pedidos de custo fora do rastreio: {len(conc.ids_custo_sem_match)}[/dim]")

    if res.valores_descartados:
        _display_table(
            [{"Pedido": v.codigo_pedido, "Origem": v.origem, "Valor": v.valor, "Motivo": v.motivo}
             for v in res.valores_descartados],
            title="Valores não faturados",
        )
    _display_avisos(res.avisos)

    if exportar:
        Path(exportar).write_text(exportar_detalhes_csv(res.detalhes, itens), encoding="utf-8")
        typer.echo(f">> {len(res.detalhes)} linhas exportadas para: {exportar}")


# -----------------------
# utilitários de CSV
# -----------------------

@app.command("filtrar-mes")
def cmd_filtrar_mes(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="CSV de entrada"),
    mes: str = typer.Option(..., "--mes", help="Mês de referência, ex.: Outubro/2025"),
    saida: Optional[str] = typer.Option(None, "--saida", help="Grava o resultado neste arquivo"),
):
    """Mantém apenas as linhas do mês de referência."""
    try:
        texto = filtrar_csv_por_mes(_ler(path), mes)
    except ErroFaturamento as e:
        _erro(e)
        return
    if saida:
        Path(saida).write_text(texto, encoding="utf-8")
        typer.echo(f">> CSV filtrado gravado em: {saida}")
    else:
        typer.echo(texto)


@app.command("contar-envios")
def cmd_contar_envios(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="CSV de envios"),
    mes: str = typer.Option(..., "--mes", help="Mês de referência, ex.: Outubro/2025"),
):
    """Conta as linhas do CSV no mês de referência."""
    try:
        total = contar_envios_no_mes(_ler(path), mes)
    except ErroFaturamento as e:
        _erro(e)
        return
    typer.echo(f"{total} envio(s) em {mes}")


@app.command("validar-custos")
def cmd_validar_custos(
    paths: List[Path] = typer.Argument(..., exists=True, dir_okay=False, help="Relatórios de custos"),
):
    """Aponta pedidos repetidos entre vários relatórios de custos."""
    res = validar_multiplos_csvs([_ler(p) for p in paths])
    status = "[bold green]OK[/]" if res.valido else "[bold red]Pedidos duplicados[/]"
    console.print(Panel(f"Arquivos: {len(paths)}\nLinhas: {res.total_linhas}\nStatus: {status}",
                        title="Validação dos relatórios de custos"))
    if res.pedidos_duplicados:
        _display_table([{"Pedido": p} for p in res.pedidos_duplicados], title="Pedidos duplicados")
    _display_avisos(res.avisos)
    if not res.valido:
        raise typer.Exit(code=1)


# -----------------------
# tabela de preços
# -----------------------

margem_app = typer.Typer(help="Atualizações de margem em lote na tabela de preços.")
app.add_typer(margem_app, name="margem")


@margem_app.command("categoria")
def cmd_margem_categoria(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Tabela de preços (.csv ou .xlsx)"),
    categoria: str = typer.Option(..., "--categoria", help="Ex.: Armazenagem"),
    margem: float = typer.Option(..., "--margem", help="Margem em %, ex.: 20"),
    saida: Optional[str] = typer.Option(None, "--saida", help="Arquivo de saída (padrão: sobrescreve)"),
):
    """Aplica a margem a todos os itens da categoria."""
    try:
        nova, alterados = atualizar_margem_categoria(carregar_tabela_precos(str(path)), categoria, margem)
    except ErroFaturamento as e:
        _erro(e)
        return
    exportar_tabela_precos(nova, saida or str(path))
    typer.echo(f">> {alterados} item(ns) de '{categoria}' atualizados para margem {_brl(margem)}%")


@margem_app.command("templates")
def cmd_margem_templates(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Tabela de preços (.csv ou .xlsx)"),
    margem: float = typer.Option(..., "--margem", help="Margem em %, ex.: 20"),
    saida: Optional[str] = typer.Option(None, "--saida", help="Arquivo de saída (padrão: sobrescreve)"),
):
    """Aplica a margem a todos os itens template."""
    try:
        nova, alterados = atualizar_margem_templates(carregar_tabela_precos(str(path)), margem)
    except ErroFaturamento as e:
        _erro(e)
        return
    exportar_tabela_precos(nova, saida or str(path))
    typer.echo(f">> {alterados} template(s) atualizados para margem {_brl(margem)}%")


def main():
    app()


if __name__ == "__main__":
    main()
