from django.db.models import Count
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from providers.models import Category
from providers.serializers import CategoryListSerializer, CategoryStatsSerializer


def _categories_with_provider_count():
    return Category.objects.annotate(provider_count=Count("providers", distinct=True))


class CategoryListView(APIView):
    """
    GET: Active categories, alphabetical, with how many providers offer each.
    Customers need the category id to post a job.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        categories = _categories_with_provider_count().filter(is_active=True).order_by("name")
        return Response(CategoryListSerializer(categories, many=True).data)


class CategoryDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, category_id: int):
        category = _categories_with_provider_count().filter(id=category_id).first()
        if category is None:
            return Response(
                {"error": "not_found", "message": "Category not found"},
                status=404
            )
        return Response(CategoryListSerializer(category).data)


class CategoryStatsView(APIView):
    """
    GET: Activity counts for every active category.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        categories = (
            Category.objects.filter(is_active=True)
            .annotate(
                job_count=Count("jobs", distinct=True),
                provider_count=Count("providers", distinct=True),
                price_history_count=Count("price_history", distinct=True),
            )
            .order_by("name")
        )
        return Response(CategoryStatsSerializer(categories, many=True).data)
