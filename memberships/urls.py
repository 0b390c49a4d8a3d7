from rest_framework.routers import DefaultRouter
from .views import MembershipViewSet, PendingPaymentViewSet

router = DefaultRouter()
router.register(r'memberships', MembershipViewSet, basename='membership')
router.register(r'pending-payments', PendingPaymentViewSet, basename='pending-payment')

urlpatterns = router.urls
