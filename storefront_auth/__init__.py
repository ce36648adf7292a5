"""
Storefront Auth

Contrôleur de sessions doubles (administrateur / client) pour le client
de la boutique B2B: validation des tokens, refresh, démarrage et
résolution de l'identité principale.
"""

__version__ = "0.1.0"
