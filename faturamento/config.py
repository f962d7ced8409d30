# faturamento/config.py
"""
Configurações globais e valores padrão do motor de faturamento.

A configuração é injetada explicitamente no motor (`processar_fatura(..., config=...)`);
`DEFAULTS` é apenas o valor usado quando o chamador não informa outra.
"""

import os
from dataclasses import dataclass
from typing import Optional, Tuple


# Tolerância (em R$) abaixo da qual a diferença entre o total do relatório de
# custos e o subtotal calculado de um pedido não gera linha de ajuste.
TOLERANCIA_DISCREPANCIA = 0.01

# Preço unitário mínimo de uma linha de DIFAL (R$)
PRECO_MINIMO_DIFAL = 3.00

# Modos de tratamento para custos sem item correspondente na tabela de preços
MODO_AVISAR = "avisar"
MODO_FALHAR = "falhar"

# Diretório dos logs (sobrescrevível por variável de ambiente)
LOG_DIR = os.environ.get("FATURAMENTO_LOG_DIR")


@dataclass(frozen=True)
class ConfigFaturamento:
    """Parâmetros do motor de faturamento."""
    tolerancia_discrepancia: float = TOLERANCIA_DISCREPANCIA
    preco_minimo_difal: float = PRECO_MINIMO_DIFAL

    # Colunas posicionais do relatório de custos (letras de planilha)
    letra_coluna_envio: str = "AD"                       # custo total de envio
    letras_coluna_envio_alternativas: Tuple[str, ...] = ("Z",)
    letra_coluna_cep: str = "M"
    letra_coluna_estado: str = "O"
    letra_coluna_itens: str = "E"                        # quantidade de itens do pedido
    letra_coluna_picking: str = "T"                      # custo base do picking (1 unidade)

    dia_vencimento: int = 10                              # dia do mês seguinte à referência

    modo_sem_correspondencia: str = MODO_AVISAR           # 'avisar' | 'falhar'
    limite_colunas_sem_correspondencia: Optional[float] = None  # ex.: 0.5 = 50%
    ignorar_pedidos_digitais: bool = True


# Instância global dos valores padrão
DEFAULTS = ConfigFaturamento()
