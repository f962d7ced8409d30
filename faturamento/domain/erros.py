# faturamento/domain/erros.py
"""
Exceções do motor de faturamento.

Somente pré-condições fatais são lançadas; situações degradadas (pedidos sem
correspondência, colunas sem item de preço, zero linhas no mês) são devolvidas
na estrutura de resultado.
"""

from typing import Any, Dict, List, Optional


class ErroFaturamento(ValueError):
    """Base de todos os erros do faturamento."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class TabelaPrecosVaziaError(ErroFaturamento):
    def __init__(self):
        super().__init__(
            "Tabela de preços está vazia. Carregue a tabela de preços antes de processar a fatura.",
            code="TABELA_PRECOS_VAZIA",
        )


class ColunaObrigatoriaAusenteError(ErroFaturamento):
    """Relatório sem coluna indispensável (ex.: número do pedido, data)."""

    def __init__(self, relatorio: str, coluna: str, disponiveis: List[str]):
        super().__init__(
            f"Coluna de {coluna} não encontrada no {relatorio}. "
            f"Colunas disponíveis: {', '.join(disponiveis) or 'N/A'}",
            code="COLUNA_OBRIGATORIA_AUSENTE",
            details={"relatorio": relatorio, "coluna": coluna, "disponiveis": disponiveis},
        )


class ColunaSemCorrespondenciaError(ErroFaturamento):
    """Valor de custo sem item correspondente (modo estrito)."""

    def __init__(self, codigo_pedido: str, coluna: str, valor: float):
        super().__init__(
            f"Coluna '{coluna}' do pedido {codigo_pedido} tem valor R$ {valor:.2f} "
            "mas não tem item correspondente na tabela de preços",
            code="COLUNA_SEM_CORRESPONDENCIA",
            details={"codigo_pedido": codigo_pedido, "coluna": coluna, "valor": valor},
        )


class ColunasNaoMapeadasError(ErroFaturamento):
    def __init__(self, colunas: List[str], percentual: float):
        super().__init__(
            f"Muitas colunas de custo sem correspondência na tabela de preços "
            f"({percentual:.1f}%): {', '.join(colunas)}",
            code="COLUNAS_NAO_MAPEADAS",
            details={"colunas": colunas, "percentual": percentual},
        )


class MesReferenciaInvalidoError(ErroFaturamento):
    def __init__(self, mes: str):
        super().__init__(
            f"Mês de referência inválido: '{mes}' (esperado 'Mês/Ano', ex.: 'Outubro/2025')",
            code="MES_REFERENCIA_INVALIDO",
            details={"mes": mes},
        )


class MargemInvalidaError(ErroFaturamento):
    def __init__(self, margem: Any):
        super().__init__(
            f"A margem deve ser um número positivo (recebido: {margem})",
            code="MARGEM_INVALIDA",
            details={"margem": margem},
        )


class CategoriaSemItensError(ErroFaturamento):
    def __init__(self, categoria: str):
        super().__init__(
            f"Nenhum item encontrado na categoria \"{categoria}\"",
            code="CATEGORIA_SEM_ITENS",
            details={"categoria": categoria},
        )
