from .service import SimilarityFinder, similarity_finder

__all__ = ["SimilarityFinder", "similarity_finder"]
