#!/usr/bin/env python3
"""
Interactive storefront demo for LicenseMart.

Browses the catalog, fills a cart and checks out through the HTTP API, then
prints the issued license keys.

Usage:
    python scripts/demo.py                              # In-process app with seed data
    python scripts/demo.py --url http://localhost:8000  # Against a running server
    python scripts/demo.py --username admin --password admin123
"""
import argparse
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import httpx

from licensemart.core.cart import Cart


def make_client(url: str = None):
    """HTTP client for a running server, or an in-process one when no URL is given."""
    if url:
        return httpx.Client(base_url=url, timeout=10.0)

    from fastapi.testclient import TestClient
    from licensemart.api.server import create_app
    return TestClient(create_app())


def format_product(p: dict, idx: int) -> str:
    flags = [label for key, label in (("is_best_seller", "best seller"), ("is_popular", "popular"), ("is_new", "new"))
             if p.get(key)]
    flag_str = f" [{', '.join(flags)}]" if flags else ""
    return f"  {idx}. {p['name']} - ${p['price']:,.2f} ({p['category']}){flag_str}"


def display_cart(cart: Cart) -> None:
    print("\n" + "-" * 40)
    print("CART")
    if not cart.items:
        print("  (empty)")
    for item in cart.items:
        print(f"  {item.product['name']} / {item.license_type['name']} x{item.quantity}"
              f"  ${item.line_total:,.2f}")
    print(f"  Total: ${cart.total():,.2f}")
    print("-" * 40)


def display_licenses(result: dict) -> None:
    print("\n" + "=" * 60)
    print(f"ORDER #{result['order']['id']} ({result['order']['status']})")
    print("=" * 60)
    for lic in result["licenses"]:
        print(f"\n{lic['product']['name']} - {lic['license_type']['name']}")
        print(f"  Key:     {lic['license_key']}")
        print(f"  Expires: {lic['expires_at'][:10]}")
    print("=" * 60)


def choose(prompt: str, count: int):
    raw = input(prompt).strip()
    if not raw.isdigit() or not 1 <= int(raw) <= count:
        return None
    return int(raw) - 1


def main():
    parser = argparse.ArgumentParser(description='Interactive LicenseMart Demo')
    parser.add_argument('--url', type=str, default=None,
                        help='Base URL of a running server (default: in-process app)')
    parser.add_argument('--username', type=str, default='user',
                        help='Account to check out with')
    parser.add_argument('--password', type=str, default='user123',
                        help='Password for --username')
    args = parser.parse_args()

    print("=" * 60)
    print("LICENSEMART - Interactive Demo")
    print("=" * 60)
    print("Commands: 'add', 'cart', 'remove', 'checkout', 'quit'")
    print("=" * 60)

    client = make_client(args.url)
    login = client.post("/users/login", json={"username": args.username, "password": args.password})
    if login.status_code != 200:
        print(f"Login failed: {login.json().get('message')}")
        return
    user = login.json()
    print(f"Logged in as {user['username']} (id {user['id']})")

    products = client.get("/products").json()
    print("\nCatalog:")
    for idx, product in enumerate(products, 1):
        print(format_product(product, idx))

    cart = Cart()

    while True:
        try:
            command = input("\n> ").strip().lower()

            if not command:
                continue

            if command == 'quit':
                print("Goodbye!")
                break

            if command == 'cart':
                display_cart(cart)
                continue

            if command == 'add':
                p_idx = choose("Product number: ", len(products))
                if p_idx is None:
                    print("No such product.")
                    continue
                product = products[p_idx]
                license_types = client.get(f"/products/{product['id']}/license-types").json()
                for idx, lt in enumerate(license_types, 1):
                    seats = lt['max_users'] if lt['max_users'] is not None else 'unlimited'
                    print(f"  {idx}. {lt['name']} - ${lt['price']:,.2f} ({seats} seats)")
                lt_idx = choose("License type number: ", len(license_types))
                if lt_idx is None:
                    print("No such license type.")
                    continue
                cart.add(product, license_types[lt_idx])
                display_cart(cart)
                continue

            if command == 'remove':
                idx = choose("Cart line number: ", len(cart))
                if idx is not None:
                    cart.remove(cart.items[idx].id)
                display_cart(cart)
                continue

            if command == 'checkout':
                if not cart.items:
                    print("Cart is empty.")
                    continue
                response = client.post("/orders", json=cart.to_order_request(user["id"]))
                if response.status_code != 201:
                    print(f"Checkout failed: {response.json().get('message')}")
                    continue
                display_licenses(response.json())
                cart.clear()
                continue

            print("Unknown command.")

        except KeyboardInterrupt:
            print("\n\nGoodbye!")
            break


if __name__ == '__main__':
    main()
