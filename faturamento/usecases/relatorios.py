# faturamento/usecases/relatorios.py
"""
Relatórios auxiliares sobre os CSVs:
- recorte de um CSV pelo mês de referência
- contagem de envios no mês
- exportação das linhas de uma fatura
- validação de vários relatórios de custos (pedidos duplicados)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from faturamento.adapters.colunas import ALIASES_DATA_FILTRO
from faturamento.adapters.parsers import encontrar_coluna, parse_csv, sanitizar, stringify_csv
from faturamento.domain.erros import ColunaObrigatoriaAusenteError, MesReferenciaInvalidoError
from faturamento.domain.models import DetalheEnvio, ItemPreco
from faturamento.domain.policies import custo_detalhe, preco_venda_exibicao, subtotal_detalhe
from faturamento.infra.logger import log_file_operation, log_system_event
from faturamento.usecases.conciliacao import filtrar_por_mes, parse_mes_referencia

# colunas de pedido aceitas na validação de múltiplos relatórios
ALIASES_PEDIDO_VALIDACAO = ("Number", "Pedido", "Order", "Código do Pedido", "Numero do Pedido")

COLUNAS_EXPORTACAO_DETALHES = (
    "Data", "Rastreio", "Pedido", "Item", "Categoria", "Quantidade",
    "Preço Unitário", "Subtotal", "Custo", "CEP", "UF",
)


# ----------------------
# util
# ----------------------

def _periodo(mes_referencia: str):
    periodo = parse_mes_referencia(mes_referencia)
    if periodo is None:
        raise MesReferenciaInvalidoError(mes_referencia)
    return periodo


def _fmt(valor: float) -> str:
    return f"{valor:.2f}"


# ----------------------
# 1) Filtro mensal
# ----------------------

def filtrar_csv_por_mes(texto: str, mes_referencia: str) -> str:
    """Devolve o CSV apenas com as linhas do mês (cabeçalho original preservado).

    Raises:
        MesReferenciaInvalidoError: mês fora do formato 'Mês/Ano'.
        ColunaObrigatoriaAusenteError: CSV sem coluna de data.
    """
    mes, ano = _periodo(mes_referencia)
    registros = parse_csv(texto)
    if not registros:
        return ""
    coluna = encontrar_coluna(registros, ALIASES_DATA_FILTRO)
    if coluna is None:
        raise ColunaObrigatoriaAusenteError("CSV", "data", list(registros[0].keys()))

    filtrados = filtrar_por_mes(registros, coluna, mes, ano)
    log_system_event("filtrar_csv_por_mes", {
        "mes": mes_referencia, "coluna": coluna, "linhas": f"{len(registros)} -> {len(filtrados)}",
    })
    if not filtrados:
        return ""
    return stringify_csv(filtrados, list(registros[0].keys()))


# ----------------------
# 2) Contagem de envios
# ----------------------

def contar_envios_no_mes(texto: str, mes_referencia: str) -> int:
    """Quantidade de linhas do CSV cuja data cai no mês de referência."""
    mes, ano = _periodo(mes_referencia)
    registros = parse_csv(texto)
    if not registros:
        return 0
    coluna = encontrar_coluna(registros, ALIASES_DATA_FILTRO)
    if coluna is None:
        return 0
    return len(filtrar_por_mes(registros, coluna, mes, ano))


# ----------------------
# 3) Exportação das linhas
# ----------------------

def exportar_detalhes_csv(detalhes: Sequence[DetalheEnvio], tabela: Sequence[ItemPreco]) -> str:
    """CSV das linhas da fatura com preço, subtotal e custo calculados."""
    indice = {i.id: i for i in tabela}
    registros: List[Dict[str, str]] = []
    for d in detalhes:
        item = indice.get(d.tabela_preco_item_id) if d.tabela_preco_item_id else None
        if d.valor_bruto:
            preco = d.quantidade_numerica
            quantidade = 1.0
        elif d.preco_unitario is not None:
            preco = d.preco_unitario
            quantidade = d.quantidade_numerica
        else:
            preco = preco_venda_exibicao(item) if item else 0.0
            quantidade = d.quantidade_numerica
        registros.append({
            "Data": d.data,
            "Rastreio": d.rastreio,
            "Pedido": d.codigo_pedido,
            "Item": item.descricao if item else "",
            "Categoria": item.categoria if item else "",
            "Quantidade": f"{quantidade:g}",
            "Preço Unitário": _fmt(preco),
            "Subtotal": _fmt(subtotal_detalhe(d, item)),
            "Custo": _fmt(custo_detalhe(d, item)),
            "CEP": d.cep or "",
            "UF": d.estado or "",
        })
    log_file_operation("export", "detalhes", rows_processed=len(registros))
    return stringify_csv(registros, COLUNAS_EXPORTACAO_DETALHES)


# ----------------------
# 4) Validação de múltiplos relatórios de custos
# ----------------------

@dataclass
class ResultadoValidacaoCustos:
    valido: bool = True
    total_linhas: int = 0
    pedidos_duplicados: List[str] = field(default_factory=list)
    avisos: List[str] = field(default_factory=list)


def validar_multiplos_csvs(textos: Sequence[str]) -> ResultadoValidacaoCustos:
    """Soma as linhas de vários relatórios e aponta pedidos repetidos.

    Conta todas as ocorrências, inclusive repetições dentro do mesmo
    arquivo. Arquivos vazios geram aviso mas não invalidam o conjunto.
    """
    resultado = ResultadoValidacaoCustos()
    ocorrencias: Dict[str, int] = {}

    for n, texto in enumerate(textos, start=1):
        registros = parse_csv(texto)
        if not registros:
            resultado.avisos.append(f"Arquivo {n} está vazio ou inválido")
            continue
        resultado.total_linhas += len(registros)
        coluna = encontrar_coluna(registros, ALIASES_PEDIDO_VALIDACAO)
        if coluna is None:
            resultado.avisos.append(f"Arquivo {n}: coluna de número do pedido não encontrada")
            continue
        for r in registros:
            pedido = sanitizar(r.get(coluna))
            if pedido:
                ocorrencias[pedido] = ocorrencias.get(pedido, 0) + 1

    resultado.pedidos_duplicados = [p for p, qtd in ocorrencias.items() if qtd > 1]
    if resultado.pedidos_duplicados:
        resultado.valido = False
        resultado.avisos.append(
            f"{len(resultado.pedidos_duplicados)} pedido(s) aparecem mais de uma vez entre os arquivos"
        )
    log_system_event("validar_multiplos_csvs", {
        "arquivos": len(textos),
        "linhas": resultado.total_linhas,
        "duplicados": len(resultado.pedidos_duplicados),
    }, level="warning" if resultado.pedidos_duplicados else "info")
    return resultado
