from partmate.services.form_controllers import (
    AddPartController,
    DashboardController,
    InventoryViewController,
    UpdatePriceController,
    UpdateStockController,
)
from partmate.services.image_compressor import CompressedImage, compress_image
from partmate.services.inventory_client import InventoryClient

__all__ = [
    "AddPartController",
    "CompressedImage",
    "DashboardController",
    "InventoryClient",
    "InventoryViewController",
    "UpdatePriceController",
    "UpdateStockController",
    "compress_image",
]
