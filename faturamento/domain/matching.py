"""
Correspondência entre colunas de custo do CSV e itens da tabela de preços.

As cascatas de prioridade são listas ordenadas de regras (dados), avaliadas
em ordem: a primeira regra que encontra algum item vence, e dentro de uma
regra vence o primeiro item na ordem da tabela. Tabelas acumulam itens
duplicados/legados ("templates"); as regras preferem sempre o item com preço
real e só recorrem a um template quando nada mais corresponde.

Todas as funções são puras e não diferenciam maiúsculas de minúsculas.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Sequence, Tuple

from faturamento.domain.models import Categoria, ItemPreco
from faturamento.domain.policies import (
    categoria_de,
    eh_coluna_envio,
    eh_custo_especifico,
    eh_template,
)

STOP_WORDS: Tuple[str, ...] = (
    "custo", "de", "do", "da", "dos", "das", "o", "a", "os", "as", "cost", "the", "of",
)
STOP_WORDS_ENVIO: Tuple[str, ...] = STOP_WORDS + ("envio", "shipping", "frete")


@dataclass(frozen=True)
class ContextoColuna:
    coluna: str
    normalizada: str
    palavras_chave: Tuple[str, ...]
    palavras_servico: Tuple[str, ...]


@dataclass(frozen=True)
class RegraCorrespondencia:
    nome: str
    aceita: Callable[[ItemPreco, ContextoColuna], bool]
    fallback: bool = False


def _palavras(texto: str, stop_words: Iterable[str]) -> Tuple[str, ...]:
    stop = set(stop_words)
    return tuple(w for w in texto.split() if len(w) > 2 and w not in stop)


def contexto_coluna(coluna: str) -> ContextoColuna:
    normalizada = (coluna or "").lower().strip()
    return ContextoColuna(
        coluna=coluna,
        normalizada=normalizada,
        palavras_chave=_palavras(normalizada, STOP_WORDS),
        palavras_servico=_palavras(normalizada, STOP_WORDS_ENVIO),
    )


def _desc(item: ItemPreco) -> str:
    return (item.descricao or "").lower().strip()


def _subcat(item: ItemPreco) -> str:
    return (item.subcategoria or "").lower().strip()


def _envio_nao_template(item: ItemPreco) -> bool:
    return categoria_de(item.categoria) is Categoria.ENVIOS and not eh_template(item)


def _texto_completo_casa(item: ItemPreco, ctx: ContextoColuna) -> bool:
    col = ctx.normalizada
    campos = [t for t in (_desc(item), _subcat(item), f"{_subcat(item)} {_desc(item)}".strip()) if t]
    return any(t in col or col in t for t in campos)


def _palavra_na_descricao(item: ItemPreco, palavras: Sequence[str]) -> bool:
    d = _desc(item)
    return bool(d) and any(p in d for p in palavras)


def _palavra_em_envio(item: ItemPreco, ctx: ContextoColuna) -> bool:
    d, s = _desc(item), _subcat(item)
    return any(p in d or p in s for p in ctx.palavras_servico)


# Colunas de envio ("envio", "shipping", "frete")
REGRAS_ENVIO: Tuple[RegraCorrespondencia, ...] = (
    RegraCorrespondencia(
        "descricao_exata",
        lambda i, c: _envio_nao_template(i) and bool(_desc(i)) and _desc(i) == c.normalizada,
    ),
    RegraCorrespondencia(
        "subcategoria_exata",
        lambda i, c: _envio_nao_template(i) and bool(_subcat(i)) and _subcat(i) == c.normalizada,
    ),
    RegraCorrespondencia(
        "texto_completo",
        lambda i, c: _envio_nao_template(i) and bool(_desc(i)) and _texto_completo_casa(i, c),
    ),
    RegraCorrespondencia(
        "palavras_chave",
        lambda i, c: _envio_nao_template(i) and bool(_desc(i)) and _palavra_em_envio(i, c),
    ),
    RegraCorrespondencia(
        "qualquer_envio_nao_template",
        lambda i, c: _envio_nao_template(i),
        fallback=True,
    ),
    RegraCorrespondencia(
        "template_envio",
        lambda i, c: eh_template(i) and ("envio" in _desc(i) or "template" in _desc(i)),
        fallback=True,
    ),
    RegraCorrespondencia(
        "qualquer_envio",
        lambda i, c: categoria_de(i.categoria) is Categoria.ENVIOS,
        fallback=True,
    ),
)

# Demais colunas: descrição exata e substrings
REGRAS_DESCRICAO: Tuple[RegraCorrespondencia, ...] = (
    RegraCorrespondencia(
        "descricao_exata",
        lambda i, c: bool(_desc(i)) and _desc(i) == c.normalizada,
    ),
    RegraCorrespondencia(
        "coluna_contem_descricao",
        lambda i, c: bool(_desc(i)) and _desc(i) in c.normalizada,
    ),
    RegraCorrespondencia(
        "descricao_contem_coluna",
        lambda i, c: bool(_desc(i)) and bool(c.normalizada) and c.normalizada in _desc(i),
    ),
)

# DIFAL, seguro e ajustes: não-template antes de qualquer item
REGRAS_PALAVRAS_ESPECIFICAS: Tuple[RegraCorrespondencia, ...] = (
    RegraCorrespondencia(
        "palavras_chave_nao_template",
        lambda i, c: not eh_template(i) and _palavra_na_descricao(i, c.palavras_chave),
    ),
    RegraCorrespondencia(
        "palavras_chave_qualquer",
        lambda i, c: _palavra_na_descricao(i, c.palavras_chave),
        fallback=True,
    ),
)

REGRAS_PALAVRAS_GERAIS: Tuple[RegraCorrespondencia, ...] = (
    RegraCorrespondencia(
        "palavras_chave_nao_template",
        lambda i, c: not eh_template(i) and _palavra_na_descricao(i, c.palavras_chave),
    ),
    RegraCorrespondencia(
        "palavras_chave_template",
        lambda i, c: eh_template(i) and _palavra_na_descricao(i, c.palavras_chave),
        fallback=True,
    ),
    RegraCorrespondencia(
        "palavras_chave_qualquer",
        lambda i, c: _palavra_na_descricao(i, c.palavras_chave),
        fallback=True,
    ),
)


def regras_para_coluna(coluna: str) -> Tuple[RegraCorrespondencia, ...]:
    """Lista ordenada de regras aplicáveis a uma coluna."""
    ctx = contexto_coluna(coluna)
    regras: Tuple[RegraCorrespondencia, ...] = ()
    if eh_coluna_envio(ctx.normalizada):
        regras += REGRAS_ENVIO
    regras += REGRAS_DESCRICAO
    if ctx.palavras_chave:
        if eh_custo_especifico(ctx.normalizada):
            regras += REGRAS_PALAVRAS_ESPECIFICAS
        else:
            regras += REGRAS_PALAVRAS_GERAIS
    return regras


def aplicar_regras(
    regras: Iterable[RegraCorrespondencia],
    ctx: ContextoColuna,
    tabela: Sequence[ItemPreco],
) -> Tuple[Optional[ItemPreco], Optional[RegraCorrespondencia]]:
    for regra in regras:
        for item in tabela:
            if regra.aceita(item, ctx):
                return item, regra
    return None, None


def casar_coluna_com_regra(
    coluna: str, tabela: Sequence[ItemPreco]
) -> Tuple[Optional[ItemPreco], Optional[RegraCorrespondencia]]:
    """Como `casar_coluna`, devolvendo também a regra que produziu o resultado."""
    if not coluna or not tabela:
        return None, None
    return aplicar_regras(regras_para_coluna(coluna), contexto_coluna(coluna), tabela)


def casar_coluna(coluna: str, tabela: Sequence[ItemPreco]) -> Optional[ItemPreco]:
    """Item da tabela correspondente a uma coluna de custo do CSV (ou None)."""
    item, _ = casar_coluna_com_regra(coluna, tabela)
    return item
