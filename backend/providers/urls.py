from django.urls import path
from . import views

app_name = 'providers'

urlpatterns = [
    path('', views.CategoryListView.as_view(), name='category-list'),
    path('stats/overview/', views.CategoryStatsView.as_view(), name='category-stats'),
    path('<int:category_id>/', views.CategoryDetailView.as_view(), name='category-detail'),
]
