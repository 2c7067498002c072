from social.models import Comment, Post, Reply

from .base import SocialTestCase


class CommentTests(SocialTestCase):

    def setUp(self):
        super().setUp()
        self.alice = self.make_user("alice")
        self.bob = self.make_user("bob")
        self.post = Post.objects.create(user=self.alice, caption="Discuss")
        self.login(self.bob)

    def test_create_and_list(self):
        response = self.client.post(
            f"/api/comment/post/{self.post.id}", {"text": "First!"}, content_type="application/json"
        )
        self.assertEqual(response.status_code, 201)
        comment = Comment.objects.get(pk=response.json()["id"])
        self.assertEqual(comment.user, self.bob)

        Reply.objects.create(comment=comment, user=self.alice, text="Thanks")
        listing = self.client.get(f"/api/comment/post/{self.post.id}").json()["comments"]
        self.assertEqual(len(listing), 1)
        self.assertEqual(listing[0]["replies"][0]["text"], "Thanks")

    def test_text_required(self):
        response = self.client.post(f"/api/comment/post/{self.post.id}", {"text": ""})
        self.assertEqual(response.status_code, 400)

    def test_comment_on_missing_post(self):
        response = self.client.post("/api/comment/post/9999", {"text": "Hello?"})
        self.assertEqual(response.status_code, 404)

    def test_only_author_edits(self):
        comment = Comment.objects.create(user=self.alice, post=self.post, text="Mine")
        response = self.put_json(f"/api/comment/{comment.id}", {"text": "Yours now"})

        self.assertEqual(response.status_code, 403)
        comment.refresh_from_db()
        self.assertEqual(comment.text, "Mine")

    def test_author_edits(self):
        comment = Comment.objects.create(user=self.bob, post=self.post, text="Typo")
        response = self.put_json(f"/api/comment/{comment.id}", {"text": "Fixed"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["text"], "Fixed")

    def test_delete_comment_deletes_replies(self):
        comment = Comment.objects.create(user=self.bob, post=self.post, text="Going away")
        reply = Reply.objects.create(comment=comment, user=self.alice, text="Bye")

        response = self.client.delete(f"/api/comment/{comment.id}")

        self.assertEqual(response.status_code, 200)
        self.assertFalse(Comment.objects.filter(pk=comment.pk).exists())
        self.assertFalse(Reply.objects.filter(pk=reply.pk).exists())

    def test_like_comment_twice_conflicts(self):
        comment = Comment.objects.create(user=self.alice, post=self.post, text="Like me")

        self.assertEqual(self.client.post(f"/api/comment/like/{comment.id}").status_code, 200)
        self.assertEqual(self.client.post(f"/api/comment/like/{comment.id}").status_code, 409)
        self.assertEqual(comment.likes.count(), 1)

        self.assertEqual(self.client.post(f"/api/comment/dislike/{comment.id}").status_code, 200)
        self.assertEqual(self.client.post(f"/api/comment/dislike/{comment.id}").status_code, 409)


class ReplyTests(SocialTestCase):

    def setUp(self):
        super().setUp()
        self.alice = self.make_user("alice")
        self.bob = self.make_user("bob")
        post = Post.objects.create(user=self.alice, caption="Discuss")
        self.comment = Comment.objects.create(user=self.alice, post=post, text="Thoughts?")
        self.login(self.bob)

    def test_add_reply(self):
        response = self.client.post(
            f"/api/comment/reply/{self.comment.id}", {"text": "Agreed"}, content_type="application/json"
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(self.comment.replies.get().user, self.bob)

    def test_update_and_delete_own_reply(self):
        reply = Reply.objects.create(comment=self.comment, user=self.bob, text="Draft")
        url = f"/api/comment/reply/{self.comment.id}/{reply.id}"

        response = self.put_json(url, {"text": "Final"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["text"], "Final")

        response = self.client.delete(url)
        self.assertEqual(response.status_code, 200)
        self.assertFalse(Reply.objects.filter(pk=reply.pk).exists())

    def test_cannot_delete_others_reply(self):
        reply = Reply.objects.create(comment=self.comment, user=self.alice, text="Mine")
        response = self.client.delete(f"/api/comment/reply/{self.comment.id}/{reply.id}")

        self.assertEqual(response.status_code, 403)
        self.assertTrue(Reply.objects.filter(pk=reply.pk).exists())

    def test_reply_must_belong_to_comment(self):
        other = Comment.objects.create(user=self.alice, post=self.comment.post, text="Other")
        reply = Reply.objects.create(comment=other, user=self.bob, text="Here")

        response = self.client.delete(f"/api/comment/reply/{self.comment.id}/{reply.id}")
        self.assertEqual(response.status_code, 404)

    def test_like_reply_twice_conflicts(self):
        reply = Reply.objects.create(comment=self.comment, user=self.alice, text="Like me")
        url = f"/api/comment/like/reply/{self.comment.id}/{reply.id}"

        self.assertEqual(self.client.post(url).status_code, 200)
        self.assertEqual(self.client.post(url).status_code, 409)
        self.assertEqual(reply.likes.count(), 1)

    def test_dislike_reply_without_like_conflicts(self):
        reply = Reply.objects.create(comment=self.comment, user=self.alice, text="Meh")
        response = self.client.post(f"/api/comment/dislike/reply/{self.comment.id}/{reply.id}")
        self.assertEqual(response.status_code, 409)
