"""
Script para sembrar datos de ejemplo

Genera registros sintéticos en el backend configurado y muestra el
resumen del dashboard resultante. Opcionalmente exporta a un archivo.

Uso:
    python scripts/seed_sample_data.py [dias] [archivo_export.json|.csv]
"""

import sys
import json
import asyncio
from pathlib import Path

# Agregar el directorio raíz al path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv

load_dotenv()

from config.settings import settings
from farmtech.core.context import AppContext
from farmtech.metrics.sample_data import generate_sample_records


async def seed_sample_data(days: int, export_path: Path = None):
    """Siembra datos de ejemplo y muestra el resumen."""

    ctx = AppContext.create(seed_sample_data=False)
    await ctx.initialize()

    try:
        existing = await ctx.store.get_all()
        if existing:
            print(f"  El almacén ya tiene {len(existing)} registros, omitiendo siembra...")
        else:
            print(f"Generando {days} días de datos de ejemplo...")
            records = generate_sample_records(days=days, seed=settings.ANALYTICS_SAMPLE_SEED)
            if not await ctx.store.save_all(records):
                print("  Error: no se pudieron guardar los registros")
                return
            print(f"  Creados: {len(records)} registros")

        summary = await ctx.analytics.generate_dashboard_summary()

        print("\n" + "=" * 50)
        print("RESUMEN DEL DASHBOARD")
        print("=" * 50)
        for key, value in summary.items():
            if key in ("growth", "dateRange"):
                continue
            print(f"  {key}: {value}")
        print("\nCrecimiento semanal (%):")
        for key, value in summary["growth"].items():
            print(f"  {key}: {value}")

        if export_path is not None:
            fmt = "csv" if export_path.suffix.lower() == ".csv" else "json"
            export = await ctx.analytics.export_analytics(fmt, admin_id="script")
            if fmt == "csv":
                export_path.write_text(export["content"], encoding="utf-8")
            else:
                export_path.write_text(json.dumps(export, ensure_ascii=False, indent=2), encoding="utf-8")
            print(f"\nExportados {export['totalRecords']} registros a {export_path}")
    finally:
        await ctx.shutdown()


if __name__ == "__main__":
    days = int(sys.argv[1]) if len(sys.argv) > 1 else settings.ANALYTICS_SAMPLE_DAYS
    export_path = Path(sys.argv[2]) if len(sys.argv) > 2 else None
    asyncio.run(seed_sample_data(days, export_path))
