from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from accounts.permissions import IsCustomer, IsProvider
from jobs.serializers import (
    JobSerializer,
    QuickBookJobCreateSerializer,
    PostQuoteJobCreateSerializer,
    BidSerializer,
    RankedBidSerializer,
    BidCreateSerializer,
    EscrowSerializer,
    JobCancelSerializer,
    PriceGuidanceSerializer,
)
from services.job_management import (
    create_quick_book_job,
    create_post_quote_job,
    accept_quick_book_job,
    accept_bid,
    cancel_job,
    start_job,
    complete_job,
    release_escrow,
    get_escrow_for_job,
    get_available_jobs_for_provider,
    get_jobs_for_user,
    get_job_for_user,
    DispatchError,
    NotFoundError,
    AlreadyTakenError,
    DeadlinePassedError,
    UnauthorizedError,
    DuplicateBidError,
    InvalidTransitionError,
    DispatchValidationError,
)
from services.bidding import submit_bid, rank_bids, withdraw_bid
from services.pricing import get_price_guidance


ERROR_STATUS_CODES = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (AlreadyTakenError, status.HTTP_409_CONFLICT),
    (DeadlinePassedError, status.HTTP_410_GONE),
    (UnauthorizedError, status.HTTP_403_FORBIDDEN),
    (DuplicateBidError, status.HTTP_409_CONFLICT),
    (InvalidTransitionError, status.HTTP_400_BAD_REQUEST),
    (DispatchValidationError, status.HTTP_400_BAD_REQUEST),
]


class DispatchAPIView(APIView):
    """
    Base view for dispatch endpoints.

    Turns the service layer's DispatchError subclasses into
    ``{"error": <code>, "message": <text>}`` responses.
    """
    permission_classes = [IsAuthenticated]

    def handle_exception(self, exc):
        if isinstance(exc, DispatchError):
            status_code = status.HTTP_400_BAD_REQUEST
            for error_class, code in ERROR_STATUS_CODES:
                if isinstance(exc, error_class):
                    status_code = code
                    break
            return Response({"error": exc.error_code, "message": exc.message}, status=status_code)
        return super().handle_exception(exc)


def _job_response(result, status_code=status.HTTP_200_OK, **extra):
    body = {**JobSerializer(result.job).data, "message": result.message, **extra}
    if result.escrow is not None:
        body["escrow"] = EscrowSerializer(result.escrow).data
    return Response(body, status=status_code)


# ==================== Pricing ====================

class PriceGuidanceView(DispatchAPIView):
    """
    GET: p10 / p50 / p90 of completed job prices in a category.
    """

    def get(self, request, category_id: int):
        guidance = get_price_guidance(category_id)
        return Response(PriceGuidanceSerializer(guidance).data)


# ==================== Customer Job APIs ====================

class QuickBookJobCreateView(DispatchAPIView):
    """
    POST: Customer books a provider now at the category's median price.
    """
    permission_classes = [IsAuthenticated, IsCustomer]

    def post(self, request):
        serializer = QuickBookJobCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = create_quick_book_job(customer=request.user, **serializer.validated_data)
        return _job_response(
            result,
            status.HTTP_201_CREATED,
            providers_notified=result.extra["providers_notified"],
        )


class PostQuoteJobCreateView(DispatchAPIView):
    """
    POST: Customer posts a job and collects bids.
    """
    permission_classes = [IsAuthenticated, IsCustomer]

    def post(self, request):
        serializer = PostQuoteJobCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = create_post_quote_job(customer=request.user, **serializer.validated_data)
        return _job_response(
            result,
            status.HTTP_201_CREATED,
            providers_notified=result.extra["providers_notified"],
        )


class MyJobsView(DispatchAPIView):
    """
    GET: Jobs the user posted or is assigned to. Optional ?status= filter.
    """

    def get(self, request):
        jobs = get_jobs_for_user(request.user, status=request.query_params.get("status"))
        return Response(JobSerializer(jobs, many=True).data)


class JobDetailView(DispatchAPIView):

    def get(self, request, job_id: int):
        job = get_job_for_user(job_id, request.user)
        return Response(JobSerializer(job).data)


class JobCancelView(DispatchAPIView):
    """
    POST: Customer or assigned provider cancels a job.
    """

    def post(self, request, job_id: int):
        serializer = JobCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = cancel_job(job_id, request.user, serializer.validated_data.get("reason", ""))
        return _job_response(result, was_booked=result.extra["was_booked"])


# ==================== Provider Job APIs ====================

class AvailableJobsView(DispatchAPIView):
    """
    GET: Broadcasted jobs the provider has been notified about.
    """
    permission_classes = [IsAuthenticated, IsProvider]

    def get(self, request):
        jobs = get_available_jobs_for_provider(request.user)
        return Response(JobSerializer(jobs, many=True).data)


class QuickBookAcceptView(DispatchAPIView):
    """
    POST: Provider accepts a quick-book job. First one wins.
    """
    permission_classes = [IsAuthenticated, IsProvider]

    def post(self, request, job_id: int):
        result = accept_quick_book_job(job_id, request.user)
        return _job_response(result)


class JobStartView(DispatchAPIView):
    permission_classes = [IsAuthenticated, IsProvider]

    def post(self, request, job_id: int):
        return _job_response(start_job(job_id, request.user))


class JobCompleteView(DispatchAPIView):
    permission_classes = [IsAuthenticated, IsProvider]

    def post(self, request, job_id: int):
        return _job_response(complete_job(job_id, request.user))


# ==================== Bids ====================

class JobBidsView(DispatchAPIView):
    """
    GET: Customer lists pending bids on their job, best first.
    POST: Provider submits a bid.
    """

    def get_permissions(self):
        if self.request.method == "POST":
            return [IsAuthenticated(), IsProvider()]
        return [IsAuthenticated(), IsCustomer()]

    def get(self, request, job_id: int):
        job = get_job_for_user(job_id, request.user)
        if job.customer_id != request.user.id:
            raise UnauthorizedError("Only the customer who posted this job can view its bids")

        bids = rank_bids(job.id)
        return Response({
            "job_id": job.id,
            "status": job.status,
            "bids": RankedBidSerializer(bids, many=True).data,
        })

    def post(self, request, job_id: int):
        serializer = BidCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = submit_bid(job_id, request.user, **serializer.validated_data)
        body = {
            "bid": BidSerializer(result.bid).data,
            "auto_hired": result.auto_hired,
            "message": result.message,
        }
        if result.auto_hired:
            body["job"] = JobSerializer(result.job).data
            body["escrow"] = EscrowSerializer(result.escrow).data
        return Response(body, status=status.HTTP_201_CREATED)


class BidAcceptView(DispatchAPIView):
    """
    POST: Customer picks a bid.
    """
    permission_classes = [IsAuthenticated, IsCustomer]

    def post(self, request, bid_id: int):
        result = accept_bid(bid_id, customer=request.user)
        return _job_response(result, bid=BidSerializer(result.bid).data)


class BidWithdrawView(DispatchAPIView):
    permission_classes = [IsAuthenticated, IsProvider]

    def post(self, request, bid_id: int):
        bid = withdraw_bid(bid_id, request.user)
        return Response(BidSerializer(bid).data)


# ==================== Escrow ====================

class JobEscrowView(DispatchAPIView):

    def get(self, request, job_id: int):
        escrow = get_escrow_for_job(job_id, request.user)
        return Response(EscrowSerializer(escrow).data)


class EscrowReleaseView(DispatchAPIView):
    """
    POST: Customer releases held funds to the provider.
    """
    permission_classes = [IsAuthenticated, IsCustomer]

    def post(self, request, escrow_id: int):
        escrow = release_escrow(escrow_id, request.user)
        return Response(EscrowSerializer(escrow).data)
