# faturamento/domain/models.py
"""
Modelos (dataclasses) do domínio de faturamento.

Observações importantes:
- A quantidade de um `DetalheEnvio` é um tipo marcado: `Contagem` (quantidade
  real, ex.: unidades armazenadas) ou `ValorBruto` (valor monetário vindo do CSV,
  usado em envios não-template, templates repassados e ajustes). As regras de
  subtotal e de custo dependem da marcação, não da categoria do item.
- Nenhum modelo aqui realiza I/O; a persistência é responsabilidade do chamador.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, List, Optional, Union


class Categoria(str, Enum):
    """Categorias canônicas da tabela de preços."""
    ENVIOS = "Envios"
    RETORNOS = "Retornos"
    ARMAZENAGEM = "Armazenagem"
    DIFAL = "Difal"
    LOGISTICA = "Logística"
    MAQUILA = "Maquila/Entrada de material externo"
    AJUSTES = "Ajustes"
    OUTRA = "Outra"


class GrupoCusto(str, Enum):
    """Agrupamento usado nos totais da cobrança."""
    ENVIO = "envio"
    ARMAZENAGEM = "armazenagem"
    LOGISTICO = "logistico"


class StatusCobranca(str, Enum):
    PENDENTE = "Pendente"
    ENVIADA = "Enviada"
    PAGA = "Paga"
    VENCIDO = "Vencido"


@dataclass
class ItemPreco:
    """Serviço vendável da tabela de preços."""
    id: str
    categoria: str
    subcategoria: str = ""
    descricao: str = ""
    metrica: str = "Unidade"
    custo_unitario: float = 0.0
    margem_lucro: float = 0.0     # em %, ex.: 20 para 20%
    preco_venda: float = 0.0


@dataclass(frozen=True)
class Contagem:
    """Quantidade real (unidades, pedidos, itens)."""
    valor: float


@dataclass(frozen=True)
class ValorBruto:
    """Valor monetário lido do CSV e cobrado como está (preço unitário 1)."""
    valor: float


Quantidade = Union[Contagem, ValorBruto]


@dataclass
class DetalheEnvio:
    """Linha cobrada de uma fatura."""
    id: str
    cobranca_id: str
    data: str
    rastreio: str
    codigo_pedido: str
    tabela_preco_item_id: Optional[str]
    quantidade: Quantidade
    cep: Optional[str] = None
    estado: Optional[str] = None
    # Preço unitário calculado pelo motor (picking composto, item redirecionado).
    # None => preço de exibição do item da tabela.
    preco_unitario: Optional[float] = None
    # Custo unitário congelado no momento do redirecionamento de categoria.
    custo_unitario: Optional[float] = None

    @property
    def quantidade_numerica(self) -> float:
        return float(self.quantidade.valor)

    @property
    def valor_bruto(self) -> bool:
        return isinstance(self.quantidade, ValorBruto)


@dataclass
class CustoAdicional:
    """Custo lançado manualmente (sem margem)."""
    id: str
    descricao: str
    valor: float
    categoria: Optional[str] = None
    reembolso: bool = False          # reembolso => valor é subtraído
    motivo_reembolso: Optional[str] = None


@dataclass
class Cliente:
    id: str
    nome: str = ""
    unidades_em_estoque: float = 0
    # posições de armazenagem por tipo, ex.: {"pallet": 3, "prateleira": 10}
    posicoes: Dict[str, float] = field(default_factory=dict)
    skus_entrada_material: float = 0
    tabela_preco_id: Optional[str] = None


@dataclass
class TotaisFatura:
    total_envio: float = 0.0
    total_armazenagem: float = 0.0
    total_custos_logisticos: float = 0.0
    total_custos_adicionais: float = 0.0
    total_custos_extras: float = 0.0
    custo_total: float = 0.0
    valor_total: float = 0.0
    quantidade_envios: int = 0
    total_difal: float = 0.0
    quantidade_difal: int = 0


@dataclass
class CobrancaMensal:
    """Cobrança mensal (rascunho em memória até o chamador persistir)."""
    id: str
    cliente_id: str
    mes_referencia: str            # "Outubro/2025"
    data_vencimento: str           # ISO
    status: StatusCobranca = StatusCobranca.PENDENTE
    total_envio: float = 0.0
    quantidade_envios: int = 0
    total_armazenagem: float = 0.0
    total_custos_logisticos: float = 0.0
    total_custos_adicionais: float = 0.0
    total_custos_extras: float = 0.0
    custo_total: float = 0.0
    valor_total: float = 0.0
    confirmada_pelo_cliente: bool = False


@dataclass
class ValorDescartado:
    """Valor do CSV que não entrou na fatura."""
    codigo_pedido: str
    origem: str                    # nome da coluna ou 'discrepancia'
    valor: float
    motivo: str


@dataclass
class PedidoConciliado:
    codigo_pedido: str
    linha_rastreio: Dict[str, str]
    linha_custo: Dict[str, str]
    data: Optional[date] = None            # data do pedido (relatório de custos ou de rastreio)
    rastreio: str = ""


@dataclass
class ResultadoConciliacao:
    pedidos_conciliados: List[PedidoConciliado] = field(default_factory=list)
    ids_rastreio_sem_match: List[str] = field(default_factory=list)
    ids_custo_sem_match: List[str] = field(default_factory=list)
    linhas_rastreio: int = 0
    linhas_custo: int = 0
    avisos: List[str] = field(default_factory=list)


@dataclass
class ResumoFatura:
    """Resumo para revisão antes da aprovação."""
    total_pedidos_encontrados: int = 0
    total_pedidos_unicos: int = 0
    total_envios: float = 0.0
    quantidade_envios: int = 0
    total_difal: float = 0.0
    quantidade_difal: int = 0
    total_armazenagem: float = 0.0
    total_custos_logisticos: float = 0.0
    total_geral: float = 0.0
    periodo_detectado: str = "N/A"
    cliente_nome: str = ""
    mes_referencia: str = ""
    pedidos_digitais_ignorados: List[str] = field(default_factory=list)
    avisos: List[str] = field(default_factory=list)


@dataclass
class FaturaProcessada:
    """Resultado completo de uma execução do motor."""
    cobranca: CobrancaMensal
    detalhes: List[DetalheEnvio]
    periodo_detectado: str
    conciliacao: ResultadoConciliacao
    resumo: ResumoFatura
    valores_descartados: List[ValorDescartado] = field(default_factory=list)
    avisos: List[str] = field(default_factory=list)
