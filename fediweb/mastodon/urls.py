"""URLconf for Mastodon."""


from django.urls import path

from . import views

app_name = 'mastodon'
urlpatterns = [
    path('', views.root, name='root'),
    path('signin', views.signin, name='signin'),
    path('oauth_callback', views.oauth_callback, name='callback'),
    path('signout', views.signout, name='signout'),
    path('timeline/<slug:kind>', views.timeline, name='timeline'),
    path('thread/<str:id>', views.thread, name='thread'),
    path('notifications', views.notifications, name='notifications'),
    path('user/<str:id>', views.user, name='user'),
    path('likedby/<str:id>', views.liked_by, name='liked-by'),
    path('retweetedby/<str:id>', views.retweeted_by, name='retweeted-by'),
    path('following/<str:id>', views.following, name='following'),
    path('followers/<str:id>', views.followers, name='followers'),
    path('search', views.search, name='search'),
    path('settings', views.user_settings, name='settings'),
    path('post', views.post, name='post'),
    path('like/<str:id>', views.like, name='like'),
    path('unlike/<str:id>', views.unlike, name='unlike'),
    path('retweet/<str:id>', views.retweet, name='retweet'),
    path('unretweet/<str:id>', views.unretweet, name='unretweet'),
    path('follow/<str:id>', views.follow, name='follow'),
    path('unfollow/<str:id>', views.unfollow, name='unfollow'),
]
