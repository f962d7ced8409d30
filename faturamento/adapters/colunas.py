# faturamento/adapters/colunas.py
"""
Classificação das colunas dos relatórios de rastreio e de custos.

- Relatório de custos: quais colunas são valores de custo, quais são
  metadados (pedido, data, total) e quais são posicionais (custo total de
  envio, CEP, UF, quantidade de itens, custo base do picking).
- Relatório de rastreio: detecção do layout do exportador (legado ou
  flexível) e resolução das colunas de pedido, data, rastreio e e-mail.

Os nomes aceitos para cada coluna ficam em tuplas de apelidos; a resolução
usa `encontrar_coluna` (exato, sem caixa, substring).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence

from faturamento.adapters.parsers import (
    Registro,
    coluna_por_letra,
    colunas_de,
    encontrar_coluna,
    parse_valor,
)
from faturamento.config import DEFAULTS, ConfigFaturamento
from faturamento.domain.policies import eh_coluna_envio

# ---------------------------
# apelidos de colunas
# ---------------------------

ALIASES_PEDIDO_CUSTOS = (
    "Número do pedido", "Número do Pedido", "Numero do pedido", "Numero",
    "Order ID", "OrderId", "Pedido",
)
ALIASES_DATA_CUSTOS = ("Data do pedido", "Data do Pedido", "Data", "Date")
ALIASES_TOTAL = ("Total", "total", "Valor Total", "Custo Total")
ALIASES_CUSTO_ENVIO = ("Custo de envio", "Custo de Envio", "Custo Envio", "Shipping Cost", "Frete")
ALIASES_QTD_ITENS = (
    "Produtos enviados", "Products shipped", "Item quantity",
    "Quantidade de itens", "Items shipped", "Itens enviados",
)
ALIASES_CEP = ("CEP", "Cep", "Zip code", "Postal code")
ALIASES_ESTADO = ("Estado", "UF", "State")
ALIASES_PICKING = ("Custo do picking de produtos", "Custo do picking", "Picking cost")
ALIASES_EMAIL = ("Email", "email", "E-mail", "e-mail", "Email do cliente", "Customer Email")

ALIASES_DATA_RASTREIO = (
    "Data de envio", "Data de Envio", "Data do envio", "Data do Envio",
    "Data", "Date", "Envio Date",
    "Data de criação", "Data de Criação", "Data criação", "Created at",
    "Data de Entrega", "Data de entrega", "Shipped at", "Placed at",
    "Data do pedido", "Data do Pedido",
)
ALIASES_PEDIDO_RASTREIO = (
    "Número do pedido", "Número do Pedido", "Numero do pedido", "Numero", "Número",
    "Number", "Order ID", "OrderId", "Order_ID", "order_id", "Pedido",
    "Order Number", "order_number", "OrderNumber", "ID do Pedido", "id_pedido",
    "N° do pedido", "Nº do pedido", "N° Pedido", "Nº Pedido", "ID", "Order",
    "Cod Pedido", "Código Pedido", "Codigo Pedido",
)
ALIASES_RASTREIO = (
    "Rastreio", "Rastreamento", "Tracking", "Código de Rastreio",
    "Código de rastreio", "Tracking Number", "tracking_number",
)
ALIASES_STATUS = ("Status", "status")

# datas usadas pelos utilitários de filtro mensal
ALIASES_DATA_FILTRO = (
    "Data de envio", "Data de Envio", "Data do envio", "Data", "Date",
    "Envio Date", "Data do pedido", "Data do Pedido",
)

# nunca são colunas de custo (comparação exata ou substring, sem caixa)
COLUNAS_EXCLUIDAS = (
    "Número do pedido", "Numero", "Número do Pedido", "Numero do pedido",
    "Order ID", "OrderId", "Pedido",
    "Data", "Data do pedido", "Data de envio", "Data de Envio",
    "Date", "Total", "total", "Valor Total", "Custo Total",
    "Rastreio", "Rastreamento", "Tracking",
    "CEP", "Cep", "cep",
    "Estado", "UF", "uf", "estado",
)

INDICADORES_LAYOUT_FLEXIVEL = ("number", "email", "placed at", "status", "currency", "subtotal")
MINIMO_INDICADORES_FLEXIVEL = 4


# ---------------------------
# relatório de custos
# ---------------------------

def identificar_colunas_custo(fonte) -> List[str]:
    """Colunas que representam valores de custo (contêm 'custo' ou 'cost').

    Colunas de metadados (pedido, data, total, rastreio, CEP, UF) ficam de
    fora mesmo que o nome contenha 'custo', ex.: 'Custo Total'.
    """
    excluidas = [e.lower() for e in COLUNAS_EXCLUIDAS]
    resultado = []
    for coluna in colunas_de(fonte):
        c = coluna.lower()
        if any(c == e or e in c for e in excluidas):
            continue
        if "custo" in c or "cost" in c:
            resultado.append(coluna)
    return resultado


@dataclass(frozen=True)
class ColunasPosicionais:
    """Colunas localizadas por nome ou, na falta dele, pela letra da planilha."""
    envio: Optional[str] = None        # custo total de envio (AD)
    cep: Optional[str] = None          # M
    estado: Optional[str] = None       # O
    itens: Optional[str] = None        # E
    picking: Optional[str] = None      # T


def _por_letra(colunas: Sequence[str], *letras: str) -> Optional[str]:
    for letra in letras:
        col = coluna_por_letra(colunas, letra)
        if col:
            return col
    return None


def resolver_colunas_posicionais(fonte, config: ConfigFaturamento = DEFAULTS) -> ColunasPosicionais:
    colunas = colunas_de(fonte)
    if not colunas:
        return ColunasPosicionais()
    envio = encontrar_coluna(colunas, ALIASES_CUSTO_ENVIO) or _por_letra(
        colunas, config.letra_coluna_envio, *config.letras_coluna_envio_alternativas
    )
    return ColunasPosicionais(
        envio=envio,
        cep=encontrar_coluna(colunas, ALIASES_CEP, parcial=False)
        or _por_letra(colunas, config.letra_coluna_cep),
        estado=encontrar_coluna(colunas, ALIASES_ESTADO, parcial=False)
        or _por_letra(colunas, config.letra_coluna_estado),
        itens=encontrar_coluna(colunas, ALIASES_QTD_ITENS)
        or _por_letra(colunas, config.letra_coluna_itens),
        picking=encontrar_coluna(colunas, ALIASES_PICKING, parcial=False)
        or _por_letra(colunas, config.letra_coluna_picking),
    )


@dataclass(frozen=True)
class EsquemaCustos:
    coluna_pedido: Optional[str]
    coluna_data: Optional[str]
    coluna_total: Optional[str]
    posicionais: ColunasPosicionais
    colunas_custo: List[str] = field(default_factory=list)   # sem as colunas de envio


def montar_esquema_custos(fonte, config: ConfigFaturamento = DEFAULTS) -> EsquemaCustos:
    colunas = colunas_de(fonte)
    posicionais = resolver_colunas_posicionais(colunas, config)
    # envio já vem somado na coluna posicional; as demais de envio ficam de fora
    custos = [
        c for c in identificar_colunas_custo(colunas)
        if c != posicionais.envio and not eh_coluna_envio(c)
    ]
    pedido = encontrar_coluna(colunas, ALIASES_PEDIDO_CUSTOS)
    return EsquemaCustos(
        coluna_pedido=pedido,
        # 'Pedido' casaria com 'Data do pedido' por substring
        coluna_data=encontrar_coluna([c for c in colunas if c != pedido], ALIASES_DATA_CUSTOS),
        coluna_total=encontrar_coluna(colunas, ALIASES_TOTAL, parcial=False),
        posicionais=posicionais,
        colunas_custo=custos,
    )


# ---------------------------
# relatório de rastreio
# ---------------------------

class LayoutRastreio(str, Enum):
    LEGADO = "legado"
    FLEXIVEL = "flexivel"


@dataclass(frozen=True)
class EsquemaRastreio:
    layout: LayoutRastreio
    coluna_data: Optional[str] = None
    coluna_pedido: Optional[str] = None
    coluna_email: Optional[str] = None
    coluna_rastreio: Optional[str] = None
    coluna_status: Optional[str] = None


def detectar_layout_rastreio(fonte) -> LayoutRastreio:
    """Flexível quando ao menos 4 das 6 colunas típicas (Number, Email, ...) existem."""
    colunas = {c.lower() for c in colunas_de(fonte)}
    encontrados = sum(1 for ind in INDICADORES_LAYOUT_FLEXIVEL if ind in colunas)
    if encontrados >= MINIMO_INDICADORES_FLEXIVEL:
        return LayoutRastreio.FLEXIVEL
    return LayoutRastreio.LEGADO


def _coluna_data_heuristica(colunas: Sequence[str]) -> Optional[str]:
    for col in colunas:
        c = col.lower()
        if c in ("status", "state", "estado"):
            continue
        if "data" in c or "date" in c or (" at" in c and not c.startswith("st")):
            return col
    return None


def _coluna_pedido_heuristica(colunas: Sequence[str]) -> Optional[str]:
    for col in colunas:
        c = col.lower()
        if "pedido" in c or "order" in c or "numero" in c or "número" in c or c in ("id", "number"):
            return col
    return None


def montar_esquema_rastreio(fonte, layout: Optional[LayoutRastreio] = None) -> EsquemaRastreio:
    colunas = colunas_de(fonte)
    layout = layout or detectar_layout_rastreio(colunas)
    if not colunas:
        return EsquemaRastreio(layout=layout)

    if layout is LayoutRastreio.FLEXIVEL:
        return EsquemaRastreio(
            layout=layout,
            coluna_data=encontrar_coluna(colunas, ("Placed at", "Shipped at")),
            coluna_pedido=encontrar_coluna(colunas, ("Number",)),
            coluna_email=encontrar_coluna(colunas, ("Email",)),
            coluna_rastreio=None,
            coluna_status=encontrar_coluna(colunas, ALIASES_STATUS),
        )

    pedido = encontrar_coluna(colunas, ALIASES_PEDIDO_RASTREIO) or _coluna_pedido_heuristica(colunas)
    sem_pedido = [c for c in colunas if c != pedido]
    return EsquemaRastreio(
        layout=layout,
        coluna_data=encontrar_coluna(sem_pedido, ALIASES_DATA_RASTREIO) or _coluna_data_heuristica(sem_pedido),
        coluna_pedido=pedido,
        coluna_email=encontrar_coluna(colunas, ALIASES_EMAIL),
        coluna_rastreio=encontrar_coluna(colunas, ALIASES_RASTREIO),
        coluna_status=encontrar_coluna(colunas, ALIASES_STATUS + ("Estado", "State"), parcial=False),
    )


# ---------------------------
# pedidos digitais / vale-presente
# ---------------------------

PALAVRAS_VOUCHER = (
    "voucher", "vale presente", "giftcard", "gift card", "cupom", "cupão",
    "e-gift", "egift", "vale-presente", "cartão presente", "cartao presente",
)
METODOS_ENVIO_DIGITAL = ("produto digital", "digital product", "digital", "e-delivery", "download")

_COLUNAS_METODO_ENVIO = ("Shipping Method", "Método de envio", "Metodo de envio", "Shipping Mode", "Mode", "Modalidade")
_COLUNAS_CUSTO_ENVIO = ALIASES_CUSTO_ENVIO + ("shipping_cost", "Shipping")
_COLUNAS_PRODUTOS_ENVIADOS = ("Produtos enviados", "Products shipped", "Items shipped", "Itens enviados")
_COLUNAS_NOME_ITEM = ("Item name", "Nome do item", "Nome do produto", "Product name", "Produto", "Title", "Título")
_COLUNAS_SKU = ("SKU", "Product SKU", "product_sku")


def _valores(linha: Registro, nomes: Sequence[str]) -> List[str]:
    alvo = {n.lower() for n in nomes}
    return [v for k, v in linha.items() if k.lower() in alvo and v]


def eh_pedido_digital(linha: Registro) -> bool:
    """Pedido puramente digital (vale-presente, download), sem custo logístico.

    Método de envio digital decide sozinho. Caso contrário, qualquer custo de
    envio ou produto enviado indica pedido físico (pedidos mistos são
    cobrados); só então nome do item ou SKU com palavra de voucher marca o
    pedido como digital.
    """
    for valor in _valores(linha, _COLUNAS_METODO_ENVIO):
        v = valor.lower().strip()
        if any(m in v for m in METODOS_ENVIO_DIGITAL):
            return True

    for valor in _valores(linha, _COLUNAS_CUSTO_ENVIO):
        if parse_valor(valor) > 0:
            return False
    for valor in _valores(linha, _COLUNAS_PRODUTOS_ENVIADOS):
        if parse_valor(valor) > 0:
            return False

    for valor in _valores(linha, _COLUNAS_NOME_ITEM + _COLUNAS_SKU):
        v = valor.lower().strip()
        if any(p in v for p in PALAVRAS_VOUCHER):
            return True
    return False


def resumo_colunas(esquema: EsquemaCustos) -> Dict[str, Optional[str]]:
    """Mapa legível das colunas resolvidas (para logs e para a CLI)."""
    p = esquema.posicionais
    return {
        "pedido": esquema.coluna_pedido,
        "data": esquema.coluna_data,
        "total": esquema.coluna_total,
        "envio": p.envio,
        "cep": p.cep,
        "estado": p.estado,
        "itens": p.itens,
        "picking": p.picking,
    }
