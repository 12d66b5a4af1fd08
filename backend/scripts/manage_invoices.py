#!/usr/bin/env python3
"""
Mantenimiento de la numeración y de las facturas de un usuario.

Uso:
  python backend/scripts/manage_invoices.py counter show
  python backend/scripts/manage_invoices.py counter seed --value 250
  python backend/scripts/manage_invoices.py purge --owner <uid> [--dry-run]

Requiere MONGODB_URL y MONGODB_DATABASE (variables de entorno o .env).
"""

import argparse
import asyncio
import json
import logging

from proinvoice.config.settings import settings
from proinvoice.maintenance import purge_owner, seed_counter, show_counter
from proinvoice.repositories.invoice_repository import InvoiceRepository
from proinvoice.store.mongo_store import MongoDocumentStore


async def run(args: argparse.Namespace) -> None:
    store = MongoDocumentStore()
    repo = InvoiceRepository(store)
    try:
        if args.command == "counter" and args.action == "show":
            result = await show_counter(repo)
        elif args.command == "counter":
            result = await seed_counter(repo, args.value)
        else:
            result = {"invoices": await purge_owner(repo, args.owner, dry_run=args.dry_run),
                      "dry_run": args.dry_run}
        print(json.dumps(result, ensure_ascii=False))
    finally:
        await store.close()


def main():
    logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL),
                        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    parser = argparse.ArgumentParser(description='Mantenimiento de facturas ProInvoice')
    sub = parser.add_subparsers(dest='command', required=True)

    counter = sub.add_parser('counter', help='Consultar o fijar el contador global')
    counter_sub = counter.add_subparsers(dest='action', required=True)
    counter_sub.add_parser('show', help='Mostrar último número emitido')
    seed = counter_sub.add_parser('seed', help='Fijar último número emitido')
    seed.add_argument('--value', type=int, required=True, help='Último número ya emitido')

    purge = sub.add_parser('purge', help='Eliminar todas las facturas de un usuario')
    purge.add_argument('--owner', required=True, help='user_id del propietario')
    purge.add_argument('--dry-run', action='store_true', help='Mostrar conteo, sin borrar')

    args = parser.parse_args()
    asyncio.run(run(args))


if __name__ == '__main__':
    main()
