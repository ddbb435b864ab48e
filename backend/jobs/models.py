from django.db import models
from django.db.models import F, Q
from django.conf import settings
from django.utils import timezone


class JobQuerySet(models.QuerySet):

    def lock(self, job_id):
        """Fetch a job holding its row lock. Must run inside transaction.atomic()."""
        return self.select_for_update().get(id=job_id)

    def transition(self, job_id, from_statuses, to_status, **fields):
        """
        Conditionally move one job between statuses.

        The UPDATE only matches while the row is still in one of
        ``from_statuses``, so the returned row count (0 or 1) tells the
        caller whether it won the transition.
        """
        now = timezone.now()
        return self.filter(id=job_id, status__in=from_statuses).update(
            status=to_status,
            version=F('version') + 1,
            updated_at=now,
            **fields,
        )

    def claim(self, job_id, provider_id, final_price):
        """Bind a provider to a broadcasted job. Returns 1 for the single winner, 0 otherwise."""
        now = timezone.now()
        return self.filter(
            id=job_id,
            status=Job.BROADCASTED,
            provider__isnull=True,
        ).update(
            status=Job.BOOKED,
            provider_id=provider_id,
            final_price=final_price,
            booked_at=now,
            next_escalation_at=None,
            version=F('version') + 1,
            updated_at=now,
        )


class Job(models.Model):
    """A service request posted by a customer"""
    QUICK_BOOK = 'quick_book'
    POST_QUOTE = 'post_quote'

    TYPE_CHOICES = [
        (QUICK_BOOK, 'Quick Book'),
        (POST_QUOTE, 'Post & Quote'),
    ]

    PENDING = 'pending'
    BROADCASTED = 'broadcasted'
    BOOKED = 'booked'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'
    CANCELLED_BY_CUSTOMER = 'cancelled_by_customer'
    CANCELLED_BY_PROVIDER = 'cancelled_by_provider'
    EXPIRED = 'expired'

    STATUS_CHOICES = [
        (PENDING, 'Pending'),
        (BROADCASTED, 'Broadcasted'),
        (BOOKED, 'Booked'),
        (IN_PROGRESS, 'In Progress'),
        (COMPLETED, 'Completed'),
        (CANCELLED_BY_CUSTOMER, 'Cancelled by Customer'),
        (CANCELLED_BY_PROVIDER, 'Cancelled by Provider'),
        (EXPIRED, 'Expired'),
    ]

    TERMINAL_STATUSES = (COMPLETED, CANCELLED_BY_CUSTOMER, CANCELLED_BY_PROVIDER, EXPIRED)

    customer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='posted_jobs'
    )
    provider = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assigned_jobs'
    )
    category = models.ForeignKey(
        'providers.Category',
        on_delete=models.PROTECT,
        related_name='jobs'
    )

    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    job_type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    status = models.CharField(max_length=30, choices=STATUS_CHOICES, default=PENDING, db_index=True)

    # Location
    latitude = models.DecimalField(max_digits=9, decimal_places=6)
    longitude = models.DecimalField(max_digits=9, decimal_places=6)
    address = models.TextField()

    # Pricing
    estimated_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    accept_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    final_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

    # Quick book timing
    arrival_window = models.PositiveSmallIntegerField(null=True, blank=True)  # hours
    scheduled_at = models.DateTimeField(null=True, blank=True)
    quick_book_deadline = models.DateTimeField(null=True, blank=True)

    # Post & quote broadcast state
    bidding_ends_at = models.DateTimeField(null=True, blank=True)
    broadcast_stage = models.PositiveSmallIntegerField(default=1)
    last_broadcast_at = models.DateTimeField(null=True, blank=True)
    next_escalation_at = models.DateTimeField(null=True, blank=True, db_index=True)

    # Lifecycle timestamps
    booked_at = models.DateTimeField(null=True, blank=True)
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.TextField(blank=True)

    version = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = JobQuerySet.as_manager()

    class Meta:
        db_table = 'jobs'
        ordering = ['-created_at']

    def __str__(self):
        return f"Job #{self.id} - {self.title} - {self.status}"


class Bid(models.Model):
    """A provider's quote on a post & quote job"""
    PENDING = 'pending'
    ACCEPTED = 'accepted'
    REJECTED = 'rejected'
    WITHDRAWN = 'withdrawn'

    STATUS_CHOICES = [
        (PENDING, 'Pending'),
        (ACCEPTED, 'Accepted'),
        (REJECTED, 'Rejected'),
        (WITHDRAWN, 'Withdrawn'),
    ]

    job = models.ForeignKey(Job, on_delete=models.CASCADE, related_name='bids')
    provider = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='bids'
    )

    price = models.DecimalField(max_digits=10, decimal_places=2)
    estimated_eta = models.PositiveSmallIntegerField()  # minutes
    note = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PENDING)

    created_at = models.DateTimeField(auto_now_add=True)
    responded_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'bids'
        ordering = ['created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['job', 'provider'],
                name='unique_job_provider_bid'
            ),
            models.UniqueConstraint(
                fields=['job'],
                condition=Q(status='accepted'),
                name='unique_accepted_bid_per_job'
            ),
        ]

    def __str__(self):
        return f"Bid #{self.id} - Job {self.job_id} - {self.price} ({self.status})"


class Escrow(models.Model):
    """Bookkeeping record of funds held between booking and completion/refund"""
    HELD = 'held'
    RELEASED = 'released'
    REFUNDED = 'refunded'

    STATUS_CHOICES = [
        (HELD, 'Held'),
        (RELEASED, 'Released'),
        (REFUNDED, 'Refunded'),
    ]

    job = models.OneToOneField(Job, on_delete=models.PROTECT, related_name='escrow')
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=HELD)

    held_at = models.DateTimeField(default=timezone.now)
    released_at = models.DateTimeField(null=True, blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'escrows'

    def __str__(self):
        return f"Escrow #{self.id} - Job {self.job_id} - {self.amount} ({self.status})"


class JobBroadcast(models.Model):
    """Tracks which providers were notified about a job, and at which stage."""

    job = models.ForeignKey(Job, on_delete=models.CASCADE, related_name='broadcasts')
    provider = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='job_broadcasts'
    )
    stage = models.PositiveSmallIntegerField(default=1)
    distance_km = models.FloatField(null=True, blank=True)
    sent_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'job_broadcasts'
        ordering = ['stage', 'distance_km']
        constraints = [
            models.UniqueConstraint(
                fields=['job', 'provider'],
                name='unique_job_broadcast_provider'
            )
        ]

    def __str__(self):
        return f"Broadcast Job {self.job_id} -> Provider {self.provider_id} (stage {self.stage})"


class PriceHistory(models.Model):
    """Final price of a completed job, used for price guidance."""

    category = models.ForeignKey(
        'providers.Category',
        on_delete=models.PROTECT,
        related_name='price_history'
    )
    job = models.OneToOneField(
        Job,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='price_record'
    )
    price = models.DecimalField(max_digits=10, decimal_places=2)
    completed_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'price_history'
        ordering = ['price']
        verbose_name_plural = 'price history'

    def __str__(self):
        return f"{self.category} - {self.price}"
