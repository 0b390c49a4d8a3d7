from rest_framework.routers import DefaultRouter
from .views import ActivityViewSet, MembershipPlanViewSet

router = DefaultRouter()
router.register(r'activities', ActivityViewSet, basename='activity')
router.register(r'membership-plans', MembershipPlanViewSet, basename='membership-plan')

urlpatterns = router.urls
