# faturamento/usecases/conciliacao.py
"""
UC: Conciliar o relatório de rastreio com o relatório de custos.

- parse_mes_referencia(): "Outubro/2025" -> (10, 2025).
- filtrar_por_mes() / filtrar_por_intervalo(): recorte das linhas pela data.
- conciliar(): junta as linhas pelo número do pedido.

Obs.:
- O relatório de rastreio é a lista oficial do que foi enviado: pedidos só
  no relatório de custos não entram na fatura (apenas são reportados).
- Sem coluna de pedido ou de data no rastreio, a conciliação é abortada.
  Sem coluna de data no relatório de custos, ele é usado sem filtro.
- Pedido repetido no relatório de custos: vale a primeira linha.
  Pedido repetido no rastreio: cobrado uma única vez.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

from faturamento.adapters.colunas import (
    EsquemaRastreio,
    LayoutRastreio,
    montar_esquema_custos,
    montar_esquema_rastreio,
)
from faturamento.adapters.parsers import Registro, colunas_de, parse_data, sanitizar
from faturamento.domain.erros import ColunaObrigatoriaAusenteError
from faturamento.domain.models import PedidoConciliado, ResultadoConciliacao
from faturamento.infra.logger import log_conciliacao

MESES: Dict[str, int] = {
    "janeiro": 1, "fevereiro": 2, "março": 3, "marco": 3, "abril": 4,
    "maio": 5, "junho": 6, "julho": 7, "agosto": 8, "setembro": 9,
    "outubro": 10, "novembro": 11, "dezembro": 12,
}

NOMES_MESES = ("Janeiro", "Fevereiro", "Março", "Abril", "Maio", "Junho", "Julho",
               "Agosto", "Setembro", "Outubro", "Novembro", "Dezembro")

_MES_RE = re.compile(r"^\s*([^\s/]+)\s*/\s*(\d{4})\s*$")


def parse_mes_referencia(mes: Optional[str]) -> Optional[Tuple[int, int]]:
    """'Outubro/2025' -> (10, 2025); formato ou nome inválido -> None."""
    m = _MES_RE.match(mes or "")
    if not m:
        return None
    numero = MESES.get(m.group(1).lower())
    if numero is None:
        return None
    return numero, int(m.group(2))


def formatar_mes_referencia(mes: int, ano: int) -> str:
    return f"{NOMES_MESES[mes - 1]}/{ano}"


def filtrar_por_mes(registros: Sequence[Registro], coluna_data: str, mes: int, ano: int) -> List[Registro]:
    """Mantém as linhas cuja data cai no mês/ano; datas inválidas são descartadas."""
    resultado = []
    for r in registros:
        d = parse_data(r.get(coluna_data))
        if d is not None and d.month == mes and d.year == ano:
            resultado.append(r)
    return resultado


def filtrar_por_intervalo(registros: Sequence[Registro], coluna_data: str, inicio: date, fim: date) -> List[Registro]:
    """Mantém as linhas com data entre `inicio` e `fim` (inclusive)."""
    resultado = []
    for r in registros:
        d = parse_data(r.get(coluna_data))
        if d is not None and inicio <= d <= fim:
            resultado.append(r)
    return resultado


def _filtrar(
    registros: Sequence[Registro],
    coluna_data: Optional[str],
    periodo: Optional[Tuple[int, int]],
    intervalo: Optional[Tuple[date, date]],
    ignorar_filtro_mes: bool,
) -> List[Registro]:
    if coluna_data is None or ignorar_filtro_mes:
        return list(registros)
    if intervalo is not None:
        return filtrar_por_intervalo(registros, coluna_data, intervalo[0], intervalo[1])
    if periodo is None:
        return []
    return filtrar_por_mes(registros, coluna_data, periodo[0], periodo[1])


def conciliar(
    linhas_rastreio: Sequence[Registro],
    linhas_custo: Sequence[Registro],
    mes_referencia: str,
    intervalo: Optional[Tuple[date, date]] = None,
    ignorar_filtro_mes: bool = False,
    esquema_rastreio: Optional[EsquemaRastreio] = None,
) -> ResultadoConciliacao:
    """Junta rastreio e custos pelo número do pedido, restrito ao período.

    Returns:
        ResultadoConciliacao com os pedidos conciliados (ordem do rastreio),
        os ids só no rastreio e os ids só nos custos. Os três conjuntos são
        disjuntos.

    Raises:
        ColunaObrigatoriaAusenteError: rastreio com linhas mas sem coluna de
            pedido ou de data.
    """
    resultado = ResultadoConciliacao()

    esquema_r = esquema_rastreio or montar_esquema_rastreio(linhas_rastreio)
    if linhas_rastreio:
        disponiveis = colunas_de(linhas_rastreio)
        if not esquema_r.coluna_pedido:
            raise ColunaObrigatoriaAusenteError("relatório de rastreio", "número do pedido", disponiveis)
        if not esquema_r.coluna_data:
            raise ColunaObrigatoriaAusenteError("relatório de rastreio", "data", disponiveis)

    esquema_c = montar_esquema_custos(linhas_custo)
    if linhas_custo and not esquema_c.coluna_data:
        resultado.avisos.append("Coluna de data não encontrada no relatório de custos; usando todas as linhas.")
        log_conciliacao("custos_sem_data", level="warning", colunas=colunas_de(linhas_custo))
    if linhas_custo and not esquema_c.coluna_pedido:
        resultado.avisos.append("Coluna de número do pedido não encontrada no relatório de custos.")
        log_conciliacao("custos_sem_pedido", level="warning", colunas=colunas_de(linhas_custo))

    periodo = parse_mes_referencia(mes_referencia)
    if periodo is None and intervalo is None and not ignorar_filtro_mes:
        resultado.avisos.append(f"Mês de referência inválido: '{mes_referencia}'. Nenhuma linha selecionada.")
        log_conciliacao("mes_invalido", level="warning", mes=mes_referencia)

    rastreio = _filtrar(linhas_rastreio, esquema_r.coluna_data, periodo, intervalo, ignorar_filtro_mes)
    custos = _filtrar(linhas_custo, esquema_c.coluna_data, periodo, intervalo, ignorar_filtro_mes)
    resultado.linhas_rastreio = len(rastreio)
    resultado.linhas_custo = len(custos)
    log_conciliacao(
        "filtro",
        mes=mes_referencia,
        intervalo=str(intervalo) if intervalo else None,
        rastreio=f"{len(linhas_rastreio)} -> {len(rastreio)}",
        custos=f"{len(linhas_custo)} -> {len(custos)}",
    )

    if not rastreio:
        resultado.avisos.append("Nenhum pedido do relatório de rastreio no período selecionado.")

    # indexa custos pelo pedido (primeira ocorrência vence)
    indice_custos: Dict[str, Registro] = {}
    if esquema_c.coluna_pedido:
        for linha in custos:
            pedido = sanitizar(linha.get(esquema_c.coluna_pedido))
            if pedido and pedido not in indice_custos:
                indice_custos[pedido] = linha

    vistos = set()
    sem_pedido = 0
    for linha in rastreio:
        pedido = sanitizar(linha.get(esquema_r.coluna_pedido))
        if not pedido:
            sem_pedido += 1
            continue
        if pedido in vistos:
            log_conciliacao("pedido_duplicado_rastreio", codigo_pedido=pedido)
            continue
        vistos.add(pedido)

        linha_custo = indice_custos.get(pedido)
        if linha_custo is None:
            resultado.ids_rastreio_sem_match.append(pedido)
            continue

        data = None
        if esquema_c.coluna_data:
            data = parse_data(linha_custo.get(esquema_c.coluna_data))
        if data is None:
            data = parse_data(linha.get(esquema_r.coluna_data))

        if esquema_r.coluna_rastreio:
            rastreio_valor = sanitizar(linha.get(esquema_r.coluna_rastreio))
        elif esquema_r.layout is LayoutRastreio.FLEXIVEL:
            rastreio_valor = pedido
        else:
            rastreio_valor = ""

        resultado.pedidos_conciliados.append(
            PedidoConciliado(
                codigo_pedido=pedido,
                linha_rastreio=dict(linha),
                linha_custo=dict(linha_custo),
                data=data,
                rastreio=rastreio_valor,
            )
        )

    resultado.ids_custo_sem_match = [p for p in indice_custos if p not in vistos]

    if sem_pedido:
        resultado.avisos.append(f"{sem_pedido} linha(s) do rastreio sem número do pedido.")
    if resultado.ids_rastreio_sem_match:
        log_conciliacao(
            "rastreio_sem_match",
            level="warning",
            quantidade=len(resultado.ids_rastreio_sem_match),
            exemplos=resultado.ids_rastreio_sem_match[:10],
        )
    log_conciliacao(
        "resultado",
        conciliados=len(resultado.pedidos_conciliados),
        rastreio_sem_match=len(resultado.ids_rastreio_sem_match),
        custo_sem_match=len(resultado.ids_custo_sem_match),
    )
    return resultado
