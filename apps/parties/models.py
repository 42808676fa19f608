from django.db import models


class PartyType(models.TextChoices):
    SUPPLIER = 'SUPPLIER', 'Supplier'
    CUSTOMER = 'CUSTOMER', 'Customer'


class Party(models.Model):
    """Supplier or customer on the other side of a bill."""

    display_name = models.CharField(max_length=200)
    party_type = models.CharField(max_length=20, choices=PartyType.choices)

    # Contact details (maintained by master-data screens)
    phone = models.CharField(max_length=20, blank=True)
    address = models.CharField(max_length=255, blank=True)

    is_active = models.BooleanField(default=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'parties'
        verbose_name_plural = 'parties'
        indexes = [
            models.Index(fields=['party_type', 'display_name'], name='parties_type_name_idx'),
        ]
        ordering = ['display_name']

    def __str__(self):
        return f"{self.display_name} ({self.get_party_type_display()})"

    @property
    def is_supplier(self):
        return self.party_type == PartyType.SUPPLIER

    @property
    def is_customer(self):
        return self.party_type == PartyType.CUSTOMER
