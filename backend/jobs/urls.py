from django.urls import path
from . import views

app_name = 'jobs'

urlpatterns = [
    # Pricing
    path('categories/<int:category_id>/price-guidance/', views.PriceGuidanceView.as_view(), name='price-guidance'),

    # Customer job APIs
    path('jobs/quick-book/', views.QuickBookJobCreateView.as_view(), name='create-quick-book'),
    path('jobs/post-quote/', views.PostQuoteJobCreateView.as_view(), name='create-post-quote'),
    path('jobs/mine/', views.MyJobsView.as_view(), name='my-jobs'),
    path('jobs/<int:job_id>/', views.JobDetailView.as_view(), name='job-detail'),
    path('jobs/<int:job_id>/cancel/', views.JobCancelView.as_view(), name='cancel-job'),

    # Provider job actions
    path('jobs/available/', views.AvailableJobsView.as_view(), name='available-jobs'),
    path('jobs/<int:job_id>/accept/', views.QuickBookAcceptView.as_view(), name='accept-job'),
    path('jobs/<int:job_id>/start/', views.JobStartView.as_view(), name='start-job'),
    path('jobs/<int:job_id>/complete/', views.JobCompleteView.as_view(), name='complete-job'),

    # Bids
    path('jobs/<int:job_id>/bids/', views.JobBidsView.as_view(), name='job-bids'),
    path('bids/<int:bid_id>/accept/', views.BidAcceptView.as_view(), name='accept-bid'),
    path('bids/<int:bid_id>/withdraw/', views.BidWithdrawView.as_view(), name='withdraw-bid'),

    # Escrow
    path('jobs/<int:job_id>/escrow/', views.JobEscrowView.as_view(), name='job-escrow'),
    path('escrows/<int:escrow_id>/release/', views.EscrowReleaseView.as_view(), name='release-escrow'),
]
