"""
Product lookup scoped to an organization.
"""
from .models import Product


def get_products_by_id(organization, product_ids):
    """
    Return {product_id: Product} for the ids that exist in the organization.

    Missing ids are simply absent from the result; callers decide how to
    report them.
    """
    products = Product.objects.filter(organization=organization, id__in=set(product_ids))
    return {product.id: product for product in products}
