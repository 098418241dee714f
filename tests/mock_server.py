"""Mock catalog site used by the integration tests.

The Beetle Supply Co. sells equipment to insects. The catalog page links to
one detail page per product; detail pages use ``<br>`` line breaks in their
descriptions so that line-break normalization can be observed.
"""

import asyncio
from dataclasses import dataclass

from aiohttp import web


@dataclass
class MockProduct:
    """A product in the Beetle Supply Co. catalog."""

    sku: str
    name: str
    price: str
    description_lines: list[str]
    has_image: bool = True


PRODUCTS: list[MockProduct] = [
    MockProduct(
        sku="BSC-001",
        name="Leaf Umbrella",
        price="3.50",
        description_lines=["Keeps the dew off.", "Fits most beetles."],
    ),
    MockProduct(
        sku="BSC-002",
        name="Twig Walking Stick",
        price="1.25",
        description_lines=["Hand-picked twig."],
        has_image=False,
    ),
    MockProduct(
        sku="BSC-003",
        name="Acorn Helmet",
        price="7.00",
        description_lines=["Certified for falling acorns.", "One size."],
    ),
]


def get_product(sku: str) -> MockProduct | None:
    """Look up a product by SKU."""
    for product in PRODUCTS:
        if product.sku == sku:
            return product
    return None


def generate_catalog_html() -> str:
    """Catalog page listing every product."""
    items = []
    for product in PRODUCTS:
        image = (
            f'<img class="thumb" src="/img/{product.sku}.png"/>'
            if product.has_image
            else '<img class="thumb"/>'
        )
        items.append(
            f'<li class="product">'
            f'<a class="detail" href="/products/{product.sku}">'
            f"{product.name}</a>{image}</li>"
        )
    return (
        "<html><head><title>Beetle Supply Co.</title></head><body>"
        "<h1>Catalog</h1>"
        f'<ul id="products">{"".join(items)}</ul>'
        '<a class="featured" href="/products/BSC-003">Featured</a>'
        '<a class="broken" href="/products/BSC-999">Discontinued</a>'
        "</body></html>"
    )


def generate_product_html(product: MockProduct) -> str:
    """Detail page for one product."""
    description = "<br>".join(product.description_lines)
    return (
        f"<html><body><h1>{product.name}</h1>"
        f'<span class="sku">{product.sku}</span>'
        f'<span class="price">{product.price}</span>'
        f'<div class="description">{description}</div>'
        "</body></html>"
    )


async def handle_catalog(request: web.Request) -> web.Response:
    return web.Response(text=generate_catalog_html(), content_type="text/html")


async def handle_product(request: web.Request) -> web.Response:
    product = get_product(request.match_info["sku"])
    if product is None:
        return web.Response(
            text="<html><body><h1>Not Found</h1></body></html>",
            status=404,
            content_type="text/html",
        )
    return web.Response(
        text=generate_product_html(product), content_type="text/html"
    )


async def handle_server_error(request: web.Request) -> web.Response:
    return web.Response(
        text="<html><body>Oops</body></html>",
        status=500,
        content_type="text/html",
    )


async def handle_slow(request: web.Request) -> web.Response:
    await asyncio.sleep(2)
    return web.Response(text="<html></html>", content_type="text/html")


async def handle_redirect(request: web.Request) -> web.Response:
    raise web.HTTPFound("/products/BSC-001")


def create_app() -> web.Application:
    """Create the aiohttp application for the mock catalog."""
    app = web.Application()
    app.router.add_get("/", handle_catalog)
    app.router.add_get("/products/{sku}", handle_product)
    app.router.add_get("/error", handle_server_error)
    app.router.add_get("/slow", handle_slow)
    app.router.add_get("/latest", handle_redirect)
    return app
