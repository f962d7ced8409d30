# faturamento/infra/logger.py
"""
Sistema de logging do motor de faturamento.

Este módulo configura e fornece loggers para registrar as operações do
faturamento: conciliação de pedidos, precificação das linhas, valores
descartados (custos sem item correspondente, discrepâncias sem item de
ajuste), manutenção da tabela de preços e eventos gerais.

Cada logger escreve em seu próprio arquivo dentro do diretório de logs
(`FATURAMENTO_LOG_DIR`, padrão `<raiz do projeto>/logs`). Os handlers são
criados na primeira utilização, não na importação.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from faturamento.config import LOG_DIR


def _env_flag(nome: str, padrao: bool) -> bool:
    valor = os.environ.get(nome)
    if valor is None:
        return padrao
    return valor.strip().lower() in {"1", "true", "t", "sim", "s", "y", "yes", "on"}


# Flag global para habilitar/desabilitar logging
ENABLE_LOGGING = _env_flag("FATURAMENTO_LOGGING", True)
# Flag global para habilitar/desabilitar prints/output
ENABLE_OUTPUT = _env_flag("FATURAMENTO_OUTPUT", False)


def print_system(*args, **kwargs):
    """Print controlado pelo ENABLE_OUTPUT."""
    if ENABLE_OUTPUT:
        print(*args, **kwargs)


# Configuração base dos loggers
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Diretório base para logs (na pasta acima do pacote)
BASE_DIR = Path(__file__).parent.parent.parent
LOGS_DIR = Path(LOG_DIR) if LOG_DIR else BASE_DIR / "logs"

LOG_FILES = {
    "system": "system.log",
    "conciliacao": "conciliacao.log",
    "precificacao": "precificacao.log",
    "tabela": "tabela.log",
    "transactions": "transactions.log",
}


def setup_logger(name: str, log_file: str, level: int = logging.INFO) -> logging.Logger:
    """
    Configura um logger específico com arquivo de saída.

    Args:
        name: Nome do logger
        log_file: Caminho do arquivo de log
        level: Nível de logging (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        Logger configurado
    """
    # Cria o diretório de logs se não existir
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False

    # Remove handlers anteriores (reconfiguração)
    while logger.handlers:
        handler = logger.handlers[0]
        logger.removeHandler(handler)
        handler.close()

    file_handler = logging.FileHandler(log_file, encoding='utf-8')
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    logger.addHandler(file_handler)

    return logger


_loggers: Dict[str, logging.Logger] = {}


def get_logger(tipo: str) -> logging.Logger:
    """Logger do tipo pedido (system, conciliacao, precificacao, tabela, transactions)."""
    if tipo not in _loggers:
        arquivo = LOG_FILES.get(tipo, f"{tipo}.log")
        _loggers[tipo] = setup_logger(f"faturamento.{tipo}", str(LOGS_DIR / arquivo))
    return _loggers[tipo]


def _ativo() -> bool:
    return ENABLE_LOGGING or ENABLE_OUTPUT


def _emit(tipo: str, level: str, mensagem: str) -> None:
    if ENABLE_LOGGING:
        logger = get_logger(tipo)
        getattr(logger, level.lower(), logger.info)(mensagem)
    print_system(mensagem)


def log_transaction(operation: str, data: Dict[str, Any], result: Optional[Any] = None, error: Optional[str] = None) -> None:
    """
    Registra uma operação completa (ex.: processamento de uma fatura).

    Args:
        operation: Tipo de operação (processar_fatura, margem_categoria, ...)
        data: Dados de entrada resumidos
        result: Resultado da operação (opcional)
        error: Mensagem de erro (opcional)
    """
    if not _ativo():
        return
    if error:
        _emit("transactions", "error", f"TRANSACTION_FAILED: {operation} - {error} - Data: {data}")
    else:
        _emit("transactions", "info", f"TRANSACTION_SUCCESS: {operation} - Result: {result} - Data: {data}")


def log_system_event(event: str, details: Dict[str, Any] = None, level: str = "info") -> None:
    """
    Log para eventos do sistema.

    Args:
        event: Descrição do evento
        details: Detalhes adicionais (opcional)
        level: Nível do log (info, warning, error)
    """
    if not _ativo():
        return
    log_data = {"event": event, "details": details or {}}
    _emit("system", level, f"SYSTEM_EVENT: {event} - {log_data}")


def log_file_operation(operation: str, file_path: str, rows_processed: int = 0, **kwargs) -> None:
    """
    Log para operações de arquivo (importação/exportação).

    Args:
        operation: Tipo de operação (import, export)
        file_path: Caminho do arquivo
        rows_processed: Número de linhas processadas
        **kwargs: Dados adicionais
    """
    if not _ativo():
        return
    log_data = {
        "operation": operation,
        "file_path": file_path,
        "rows_processed": rows_processed,
        **kwargs
    }
    _emit("system", "info", f"FILE_{operation.upper()}: {log_data}")


def log_conciliacao(action: str, level: str = "info", **kwargs) -> None:
    """Log da conciliação (filtro mensal, pedidos sem correspondência, duplicados)."""
    if not _ativo():
        return
    _emit("conciliacao", level, f"CONCILIACAO_{action.upper()}: {kwargs}")


def log_precificacao(action: str, codigo_pedido: str, level: str = "info", **kwargs) -> None:
    """Log das regras de precificação aplicadas a um pedido."""
    if not _ativo():
        return
    log_data = {"codigo_pedido": codigo_pedido, **kwargs}
    _emit("precificacao", level, f"PRECIFICACAO_{action.upper()}: {log_data}")


def log_valor_descartado(codigo_pedido: str, origem: str, valor: float, motivo: str) -> None:
    """Todo valor do CSV que fica fora da fatura é registrado como WARNING."""
    if not _ativo():
        return
    log_data = {"codigo_pedido": codigo_pedido, "origem": origem, "valor": valor, "motivo": motivo}
    _emit("precificacao", "warning", f"VALOR_DESCARTADO: {log_data}")


def log_tabela_operation(operation: str, affected_items: int = 0, **kwargs) -> None:
    """Log de manutenção da tabela de preços (edições e atualizações em lote)."""
    if not _ativo():
        return
    log_data = {"operation": operation, "affected_items": affected_items, **kwargs}
    _emit("tabela", "info", f"TABELA_{operation.upper()}: {log_data}")


def get_log_summary(log_type: str = "transactions", lines: int = 100) -> str:
    """
    Obtém um resumo dos logs recentes.

    Args:
        log_type: Tipo de log (transactions, system, conciliacao, precificacao, tabela)
        lines: Número de linhas a retornar

    Returns:
        Conteúdo do log como string
    """
    arquivo = LOG_FILES.get(log_type)
    log_file = LOGS_DIR / arquivo if arquivo else None
    if not log_file or not log_file.exists():
        return f"Log {log_type} não encontrado."

    try:
        with open(log_file, 'r', encoding='utf-8') as f:
            all_lines = f.readlines()
    except OSError as e:
        return f"Erro ao ler log {log_type}: {str(e)}"
    recent_lines = all_lines[-lines:] if len(all_lines) > lines else all_lines
    return ''.join(recent_lines)