# faturamento/adapters/tabela_loader.py
"""
Importação e exportação da tabela de preços (CSV ou XLSX).

As funções:
- leem a planilha com pandas (todas as colunas como texto);
- normalizam cabeçalhos (acentos, variações, sinônimos);
- derivam o campo que faltar entre custo, margem e preço de venda.

Regras de derivação por linha:
- custo + preço            -> margem
- custo + margem           -> preço
- preço + margem           -> custo
- só custo                 -> preço = custo (margem 0)
- só preço                 -> custo = preço (margem 0)
"""

from __future__ import annotations

import io
import re
from pathlib import Path
from typing import Any, List, Optional, Sequence

import pandas as pd

from faturamento.adapters.parsers import detectar_delimitador, parse_valor
from faturamento.domain.formulas import (
    custo_por_preco_e_margem,
    margem_por_preco_venda,
    preco_venda_por_margem,
)
from faturamento.domain.models import ItemPreco
from faturamento.infra.logger import log_file_operation, log_system_event

# Colunas na exportação (e reconhecidas na importação)
COLUNAS_EXPORTACAO = (
    "ID", "Categoria", "Subcategoria", "Descrição do Custo", "Métrica",
    "Custo Unitário", "Margem de Lucro (%)", "Preço Unitário",
)

_ALIASES = {
    "id": "id",
    "codigo": "id",

    "categoria": "categoria",
    "subcategoria": "subcategoria",

    "descricao do custo": "descricao",
    "descricao": "descricao",
    "descricao do servico": "descricao",

    "metrica": "metrica",
    "metrica unitaria": "metrica",
    "unidade de medida": "metrica",

    "custo unitario": "custo",
    "custo unitario cubbo": "custo",
    "custo": "custo",

    "preco unitario": "preco",
    "preco unitario yoobe": "preco",
    "preco de venda": "preco",
    "preco venda": "preco",
    "preco": "preco",

    "margem de lucro": "margem",
    "margem": "margem",
}


def _slug(s: str) -> str:
    """Normaliza cabeçalhos: minúsculas, sem acentos, sem não-alfanumérico."""
    if s is None:
        return ""
    s = str(s).strip().lower()
    acentos = dict(zip("áàâãäéèêëíìîïóòôõöúùûüç", "aaaaaeeeeiiiiooooouuuuc"))
    s = "".join(acentos.get(ch, ch) for ch in s)
    s = re.sub(r"[^a-z0-9]+", " ", s)
    s = re.sub(r"\s+", " ", s).strip()
    return s


def _normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    new_cols = {}
    for col in df.columns:
        key = _slug(col)
        new_cols[col] = _ALIASES.get(key, key)
    df = df.rename(columns=new_cols)
    # cabeçalhos sinônimos na mesma planilha: vale a primeira coluna
    return df.loc[:, ~df.columns.duplicated()]


def _texto(row, key) -> Optional[str]:
    val = row.get(key)
    if val is None or pd.isna(val):
        return None
    s = str(val).strip()
    return s or None


def _numero(row, key) -> Optional[float]:
    s = _texto(row, key)
    if s is None:
        return None
    return parse_valor(s)


def _item_da_linha(row, indice: int) -> Optional[ItemPreco]:
    descricao = _texto(row, "descricao")
    categoria = _texto(row, "categoria")
    custo = _numero(row, "custo")
    preco = _numero(row, "preco")
    margem = _numero(row, "margem")
    if not descricao and not categoria and custo is None and preco is None:
        return None

    if custo is not None and preco is not None and margem is None:
        margem = margem_por_preco_venda(custo, preco)
    elif custo is not None and margem is not None and preco is None:
        preco = preco_venda_por_margem(custo, margem)
    elif preco is not None and margem is not None and custo is None:
        custo = custo_por_preco_e_margem(preco, margem)
    elif custo is not None and preco is None:
        preco, margem = custo, 0.0
    elif preco is not None and custo is None:
        custo, margem = preco, 0.0

    return ItemPreco(
        id=_texto(row, "id") or f"item_{indice + 1}",
        categoria=categoria or "Geral",
        subcategoria=_texto(row, "subcategoria") or "Geral",
        descricao=descricao or "-",
        metrica=_texto(row, "metrica") or "Unidade",
        custo_unitario=custo or 0.0,
        margem_lucro=margem or 0.0,
        preco_venda=preco or 0.0,
    )


def tabela_de_dataframe(df: pd.DataFrame) -> List[ItemPreco]:
    df = _normalize_columns(df)
    out: List[ItemPreco] = []
    for i, (_, row) in enumerate(df.iterrows()):
        item = _item_da_linha(row, i)
        if item is not None:
            out.append(item)
    return out


def tabela_de_csv(texto: str) -> List[ItemPreco]:
    """Tabela de preços a partir do texto de um CSV (`;` ou `,`)."""
    if not texto or not texto.strip():
        return []
    texto = texto.lstrip("\ufeff")
    primeira = next(l for l in texto.splitlines() if l.strip())
    df = pd.read_csv(io.StringIO(texto), sep=detectar_delimitador(primeira), dtype=str)
    return tabela_de_dataframe(df)


def carregar_tabela_precos(path: str) -> List[ItemPreco]:
    """Lê a tabela de preços de um arquivo .csv ou .xlsx."""
    log_file_operation("import", path)
    p = Path(path)
    if p.suffix.lower() in (".xlsx", ".xls"):
        df = pd.read_excel(p, dtype="string")
        tabela = tabela_de_dataframe(df)
    else:
        tabela = tabela_de_csv(p.read_text(encoding="utf-8-sig"))
    log_file_operation("import", path, rows_processed=len(tabela))
    if not tabela:
        log_system_event("tabela_precos_vazia", {"file_path": path}, level="warning")
    return tabela


def tabela_para_dataframe(tabela: Sequence[ItemPreco]) -> pd.DataFrame:
    linhas: List[List[Any]] = [
        [i.id, i.categoria, i.subcategoria, i.descricao, i.metrica,
         i.custo_unitario, i.margem_lucro, i.preco_venda]
        for i in tabela
    ]
    return pd.DataFrame(linhas, columns=list(COLUNAS_EXPORTACAO))


def exportar_tabela_precos(tabela: Sequence[ItemPreco], path: str) -> None:
    """Grava a tabela em .csv ou .xlsx (openpyxl)."""
    df = tabela_para_dataframe(tabela)
    p = Path(path)
    if p.suffix.lower() == ".xlsx":
        df.to_excel(p, index=False, engine="openpyxl")
    else:
        df.to_csv(p, index=False)
    log_file_operation("export", path, rows_processed=len(df))
