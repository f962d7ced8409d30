"""
Utilidades de parsing dos relatórios CSV.

Os exportadores de rastreio e de custos variam bastante: linhas de título
antes do cabeçalho, `;` ou `,` como separador, BOM, aspas e espaços
sobrando. As funções deste módulo toleram essas variações e nunca lançam
exceção por linha malformada: uma linha curta é completada com vazios.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Sequence, Union

import pandas as pd

Registro = Dict[str, str]

_CONTROLE_RE = re.compile(r"[\x00-\x08\x0B-\x0C\x0E-\x1F\x7F]")
_ESPACOS_RE = re.compile(r"\s+")
_ISO_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_NUM_RE = re.compile(r"[-+]?\d+(?:[.,]\d+)?")

_FORMATOS_DATA = (
    "%d/%m/%Y %H:%M:%S",
    "%d/%m/%Y %H:%M",
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%d/%m/%y",
)


def sanitizar(valor: Optional[str]) -> str:
    """Colapsa espaços, remove caracteres de controle e apara as bordas."""
    if valor is None:
        return ""
    s = _ESPACOS_RE.sub(" ", str(valor))
    s = _CONTROLE_RE.sub("", s)
    return s.strip()


def _tira_aspas(s: str) -> str:
    s = s.strip()
    if len(s) >= 2 and s.startswith('"') and s.endswith('"'):
        s = s[1:-1]
    return s.replace('""', '"')


def _split_re(delimitador: str) -> "re.Pattern[str]":
    # separador fora de aspas: número par de aspas até o fim da linha
    return re.compile(re.escape(delimitador) + r'(?=(?:(?:[^"]*"){2})*[^"]*$)')


def detectar_delimitador(linha: str) -> str:
    return ";" if linha.count(";") > linha.count(",") else ","


def parse_csv(texto: str) -> List[Registro]:
    """Converte o texto de um CSV em uma lista de registros (coluna -> valor).

    O cabeçalho é a primeira linha que contém `;` ou `,`; linhas anteriores
    (títulos de relatório) são ignoradas. Sem cabeçalho, retorna lista vazia.

    Exemplo:
        >>> parse_csv('Pedido;Total\\n"PED-1";"10,5"')
        [{'Pedido': 'PED-1', 'Total': '10,5'}]
    """
    if not texto:
        return []
    texto = texto.lstrip("\ufeff").replace("\r", "")
    linhas = [l for l in texto.split("\n") if l.strip()]

    inicio = next((i for i, l in enumerate(linhas) if ";" in l or "," in l), None)
    if inicio is None:
        return []

    delimitador = detectar_delimitador(linhas[inicio])
    separador = _split_re(delimitador)
    cabecalho = [sanitizar(h.replace('"', "")) for h in linhas[inicio].split(delimitador)]

    registros: List[Registro] = []
    for linha in linhas[inicio + 1:]:
        valores = [sanitizar(_tira_aspas(v)) for v in separador.split(linha)]
        if len(valores) < len(cabecalho):
            valores += [""] * (len(cabecalho) - len(valores))
        registros.append({h: valores[i] for i, h in enumerate(cabecalho)})
    return registros


def colunas_de(fonte: Union[Sequence[Registro], Sequence[str]]) -> List[str]:
    """Nomes de coluna de uma lista de registros (ou a própria lista de nomes)."""
    if not fonte:
        return []
    primeiro = fonte[0]
    if isinstance(primeiro, dict):
        return list(primeiro.keys())
    return [str(c) for c in fonte]


def encontrar_coluna(
    fonte: Union[Sequence[Registro], Sequence[str]],
    aliases: Iterable[str],
    parcial: bool = True,
) -> Optional[str]:
    """Resolve o nome real de uma coluna a partir de uma lista de apelidos.

    Tenta, nesta ordem: igualdade exata, igualdade sem diferenciar
    maiúsculas, e contenção de substring em qualquer direção (desligável
    com `parcial=False`). O primeiro acerto vence.
    """
    colunas = colunas_de(fonte)
    if not colunas:
        return None
    aliases = [a for a in aliases if a]

    for alias in aliases:
        if alias in colunas:
            return alias
    for alias in aliases:
        a = alias.lower()
        for col in colunas:
            if col.lower() == a:
                return col
    if not parcial:
        return None
    for alias in aliases:
        a = alias.lower()
        for col in colunas:
            c = col.lower()
            if c and (a in c or c in a):
                return col
    return None


def letra_para_indice(letra: str) -> int:
    """Converte letra de coluna de planilha em índice 0-based ('A'->0, 'AD'->29)."""
    s = (letra or "").strip().upper()
    if not s or not s.isalpha():
        raise ValueError(f"Letra de coluna inválida: '{letra}'")
    indice = 0
    for ch in s:
        indice = indice * 26 + (ord(ch) - ord("A") + 1)
    return indice - 1


def coluna_por_letra(colunas: Sequence[str], letra: str) -> Optional[str]:
    """Nome da coluna na posição indicada pela letra, se existir."""
    i = letra_para_indice(letra)
    return colunas[i] if 0 <= i < len(colunas) else None


def parse_valor(txt: Optional[str]) -> float:
    """Interpreta valores monetários ('R$ 1.234,56', '25.50', '-3,2'); vazio -> 0."""
    if txt is None:
        return 0.0
    s = str(txt).strip().replace("R$", "").replace(" ", "")
    if not s:
        return 0.0
    if "," in s:
        # formato brasileiro: ponto como milhar, vírgula como decimal
        s = s.replace(".", "").replace(",", ".")
    try:
        return float(s)
    except ValueError:
        m = _NUM_RE.search(s)
        return float(m.group(0)) if m else 0.0


def parse_data(txt: Optional[str]) -> Optional[date]:
    """Converte texto de data (ISO, dd/mm/aaaa com ou sem hora) em `date`."""
    s = sanitizar(txt)
    if not s:
        return None
    m = _ISO_RE.match(s)
    if m:
        try:
            return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
        except ValueError:
            return None
    for fmt in _FORMATOS_DATA:
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    d = pd.to_datetime(s, dayfirst=True, errors="coerce")
    if pd.isna(d):
        return None
    return d.date()


def stringify_csv(registros: Sequence[Registro], colunas: Optional[Sequence[str]] = None) -> str:
    """Gera CSV com todos os valores entre aspas (aspas internas duplicadas)."""
    if not registros:
        return ""
    cabecalho = list(colunas) if colunas else list(registros[0].keys())
    linhas = [",".join(cabecalho)]
    for r in registros:
        valores = ('"' + str(r.get(c, "") or "").replace('"', '""') + '"' for c in cabecalho)
        linhas.append(",".join(valores))
    return "\n".join(linhas)


def combinar_csvs(textos: Sequence[str]) -> List[Registro]:
    """Junta vários CSVs de custos; as colunas do primeiro arquivo definem o cabeçalho."""
    combinados: List[Registro] = []
    cabecalho: Optional[List[str]] = None
    for texto in textos:
        registros = parse_csv(texto)
        if not registros:
            continue
        if cabecalho is None:
            cabecalho = list(registros[0].keys())
        for r in registros:
            combinados.append({c: r.get(c, "") for c in cabecalho})
    return combinados

