from rest_framework.routers import DefaultRouter
from .views import SubscriptionPlanViewSet, RenewalRequestViewSet

router = DefaultRouter()
router.register(r'subscription-plans', SubscriptionPlanViewSet, basename='subscription-plan')
router.register(r'renewal-requests', RenewalRequestViewSet, basename='renewal-request')

urlpatterns = router.urls
