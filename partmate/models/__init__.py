from partmate.models.part import SparePart

__all__ = ["SparePart"]
