# app.py
"""
Entrypoint da aplicação.

Uso:
  python app.py faturar --tabela tabela.xlsx --rastreio rastreio.csv --custos custos.csv --mes Outubro/2025
  python app.py filtrar-mes envios.csv --mes Outubro/2025 --saida envios_outubro.csv
  python app.py contar-envios envios.csv --mes Outubro/2025
  python app.py validar-custos custos_1.csv custos_2.csv
  python app.py margem categoria tabela.csv --categoria Armazenagem --margem 25
"""

from faturamento.adapters.cli import main

if __name__ == "__main__":
    main()
