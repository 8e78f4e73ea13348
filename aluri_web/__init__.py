"""
Proyecto Aluri: marketplace de créditos con garantía inmobiliaria.
"""
