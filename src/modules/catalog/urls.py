"""Catalog URL configuration."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.catalog.views import BookViewSet, CategoryViewSet

router = DefaultRouter(trailing_slash=True)
router.register("books", BookViewSet, basename="book")
router.register("categories", CategoryViewSet, basename="category")

urlpatterns = router.urls
