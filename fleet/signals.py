from django.db.models.signals import pre_save
from django.dispatch import receiver

from fleet.models import Vehicle
from fleet.slugs import assign_slug, model_slug_oracle


@receiver(pre_save, sender=Vehicle)
def assign_vehicle_slug(sender, instance, raw=False, update_fields=None, **kwargs):
    """Derive a unique slug for new vehicles and vehicles whose title changed."""
    if raw:
        return
    # A partial save that leaves the title out cannot write a new slug either
    if update_fields is not None and "title" not in update_fields:
        return
    if instance._state.adding or instance.title_changed():
        instance.slug = assign_slug(
            instance.title, instance.pk, model_slug_oracle(sender)
        )
