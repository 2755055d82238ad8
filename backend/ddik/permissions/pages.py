# Overview: Page table for role-gated navigation.
# Each page is defined as: (path, title, required permission or None, in menu)

PUBLIC_PAGES = [
    ("/auth", "Entrar", None, False),
    ("/register", "Cadastro", None, False),
]

PROTECTED_PAGES = [
    ("/", "Início", "VIEW_DASHBOARD", False),
    ("/dashboard", "Dashboard", "VIEW_DASHBOARD", True),
    ("/products", "Produtos", "VIEW_PRODUCTS", True),
    ("/inventory", "Estoque", "VIEW_PRODUCTS", True),
    ("/orders", "Pedidos", "VIEW_ORDERS", True),
    ("/incidents", "Ocorrências", "VIEW_INCIDENTS", True),
    ("/reports", "Relatórios", "VIEW_REPORTS", True),
    ("/catalogo", "Catálogo", "VIEW_CATALOG", True),
]

PAGE_DEFINITIONS = PUBLIC_PAGES + PROTECTED_PAGES

LOGIN_PATH = "/auth"

# Where a role lands when it asks for a page it may not see
ROLE_HOME = {
    "admin": "/dashboard",
    "gerente": "/dashboard",
    "funcionario": "/dashboard",
    "cliente": "/catalogo",
}


def get_page_definition(path):
    """Get full definition for a page path."""
    for page in PAGE_DEFINITIONS:
        if page[0] == path:
            return {
                "path": page[0],
                "title": page[1],
                "permission": page[2],
                "in_menu": page[3],
            }
    return None
